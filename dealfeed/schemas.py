# dealfeed/schemas.py
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Telegram Bot API shapes (read-only, unknown fields ignored) ---

class PhotoSize(BaseModel):
    file_id: str
    width: int = 0
    height: int = 0
    file_size: Optional[int] = None


class Chat(BaseModel):
    id: Union[int, str]
    username: Optional[str] = None
    title: Optional[str] = None
    type: Optional[str] = None


class MessageEntity(BaseModel):
    type: str
    offset: int = 0
    length: int = 0
    url: Optional[str] = None


class ChannelMessage(BaseModel):
    message_id: int
    chat: Optional[Chat] = None
    date: Optional[int] = None
    text: Optional[str] = None
    caption: Optional[str] = None
    photo: Optional[List[PhotoSize]] = None
    entities: Optional[List[MessageEntity]] = None
    caption_entities: Optional[List[MessageEntity]] = None

    @property
    def body(self) -> str:
        return self.text or self.caption or ""

    @property
    def largest_photo(self) -> Optional[PhotoSize]:
        # Telegram lists photo variants smallest first
        return self.photo[-1] if self.photo else None


class Update(BaseModel):
    update_id: int
    channel_post: Optional[ChannelMessage] = None
    message: Optional[ChannelMessage] = None

    @property
    def post(self) -> Optional[ChannelMessage]:
        return self.channel_post or self.message


# --- Internal records ---

class DealRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    telegram_message_id: int
    channel_id: Optional[str] = None
    text: str = ""
    title: str = ""
    price: Optional[str] = None
    price_numeric: Optional[float] = None
    store: Optional[str] = None
    category: str = "Other"
    links: List[str] = Field(default_factory=list)
    has_photo: bool = False
    photo_file_id: Optional[str] = None
    photo_url: Optional[str] = None
    date: datetime
    created_at: datetime


class RunRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    run_timestamp: datetime
    messages_found: int
    messages_processed: int
    success_rate: float
    error: Optional[str] = None
    source: Optional[str] = None


# --- API responses ---

class PollResponse(BaseModel):
    processed: int
    total: int
    source: str
    timestamp: str
    dev_mode: bool


class PollErrorResponse(BaseModel):
    error: str
    timestamp: str
    dev_mode: bool


class WebhookResponse(BaseModel):
    success: bool
    id: Optional[int] = None
    error: Optional[str] = None


# --- Feed and status responses (field names match what the site reads) ---

class FeedMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    price: str
    url: str
    image_url: str = Field(alias="imageUrl")
    date: int  # epoch milliseconds
    tag: str
    store: str
    category: str


class Pagination(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    has_more: bool = Field(alias="hasMore")


class FeedMetadata(BaseModel):
    generated: str
    source: str
    error: Optional[str] = None


class FeedResponse(BaseModel):
    messages: List[FeedMessage]
    pagination: Pagination
    metadata: FeedMetadata


class BotRunSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    count: int = 0
    total_messages_found: int = Field(0, alias="totalMessagesFound")
    total_messages_processed: int = Field(0, alias="totalMessagesProcessed")
    success_rate: float = Field(1.0, alias="successRate")
    error_count: int = Field(0, alias="errorCount")
    latest_run: Optional[RunRecord] = Field(None, alias="latestRun")
    all: List[RunRecord] = Field(default_factory=list)


class MessageStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_24h: int = Field(0, alias="last24h")
    total: int = 0
    last_message_at: Optional[datetime] = Field(None, alias="lastMessageAt")


class StatusSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    health_score: int = Field(alias="healthScore")
    bot_runs: BotRunSummary = Field(alias="botRuns")
    message_stats: MessageStats = Field(alias="messageStats")
    last_updated: str = Field(alias="lastUpdated")


class PublicStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str
    health_score: int = Field(alias="healthScore")
    message_count: int = Field(alias="messageCount")
    last_updated: str = Field(alias="lastUpdated")


class StatusError(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "error"
    error: str
    last_updated: str = Field(alias="lastUpdated")
