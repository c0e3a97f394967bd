# dealfeed/services/update_sources.py
"""
Where channel posts come from.

The source is picked once per invocation: ``LiveUpdateSource`` talks to the
Bot API (with the MTProto history reader as a second path), while
``FallbackUpdateSource`` hands out a fixed pair of deal posts and never
touches the network. Both report which path produced the batch, so callers
can tell placeholder data from real posts.
"""
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional

from dealfeed.schemas import ChannelMessage, Chat, PhotoSize
from dealfeed.services.telegram_service import TelegramBotApi

if TYPE_CHECKING:
    from dealfeed.services.history_service import ChannelHistoryReader

logger = logging.getLogger(__name__)

SOURCE_LIVE = "live"
SOURCE_HISTORY = "history"
SOURCE_FALLBACK = "fallback"


@dataclass
class FetchResult:
    messages: List[ChannelMessage] = field(default_factory=list)
    source: str = SOURCE_LIVE
    error: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK


def fallback_messages(now: Optional[float] = None) -> List[ChannelMessage]:
    now = int(now if now is not None else time.time())
    chat = Chat(id="1234567890")

    def photo_variants(prefix: str) -> List[PhotoSize]:
        return [
            PhotoSize(file_id=f"{prefix}small", width=100, height=100),
            PhotoSize(file_id=f"{prefix}medium", width=320, height=320),
            PhotoSize(file_id=f"{prefix}large", width=800, height=800),
        ]

    return [
        ChannelMessage(
            message_id=101,
            text=(
                "🔥 HOT DEAL: Apple AirPods Pro (2nd Gen) are now just $189.99 at Amazon "
                "(regularly $249)! Click here to grab them before they sell out: "
                "https://amzn.to/example1"
            ),
            chat=chat,
            date=now - 300,
            photo=photo_variants("photo1"),
        ),
        ChannelMessage(
            message_id=102,
            text=(
                "⚡ FLASH SALE: Ninja Foodi 10-in-1 Pressure Cooker & Air Fryer only $129.99 "
                "(was $229.99)! Perfect for quick meals: https://target.com/example2"
            ),
            chat=chat,
            date=now - 1800,
            photo=photo_variants("photo2"),
        ),
    ]


class UpdateSource(ABC):
    @abstractmethod
    async def fetch(self) -> FetchResult:
        """Returns the newest bounded batch of channel posts."""


class FallbackUpdateSource(UpdateSource):
    async def fetch(self) -> FetchResult:
        messages = fallback_messages()
        logger.info("Using %d fallback channel posts", len(messages))
        return FetchResult(messages=messages, source=SOURCE_FALLBACK)


def post_matches_channel(post: ChannelMessage, handle: str, resolved_id: str) -> bool:
    if post.chat is None:
        return False
    chat_id = str(post.chat.id) if post.chat.id is not None else post.chat.username
    username = post.chat.username
    return (
        chat_id == resolved_id
        or chat_id == handle
        or f"@{chat_id}" == handle
        or (username is not None and username == handle.lstrip("@"))
    )


class LiveUpdateSource(UpdateSource):
    def __init__(
        self,
        bot_api: TelegramBotApi,
        channel: str,
        history_factory: Optional[Callable[[], "ChannelHistoryReader"]] = None,
        limit: int = 100,
        fallback_on_failure: bool = True,
    ):
        self.bot_api = bot_api
        self.channel = channel
        self.history_factory = history_factory
        self.limit = limit
        self.fallback_on_failure = fallback_on_failure

    async def resolve_channel(self) -> str:
        if not self.channel.startswith("@"):
            return self.channel
        try:
            chat = await self.bot_api.get_chat(self.channel)
        except Exception as e:
            logger.warning("Could not resolve chat id for %s: %s", self.channel, e)
            return self.channel
        logger.info("Resolved %s to chat id %s", self.channel, chat.id)
        return str(chat.id)

    async def _from_updates(self, resolved_id: str) -> List[ChannelMessage]:
        # No offset: the pending queue comes back whole and the watermark drops what was seen
        updates = await self.bot_api.get_updates(limit=self.limit)
        logger.info("Received %d updates from Telegram", len(updates))
        return [
            update.post
            for update in updates
            if update.post is not None and post_matches_channel(update.post, self.channel, resolved_id)
        ]

    async def _from_history(self, resolved_id: str) -> List[ChannelMessage]:
        async with self.history_factory() as reader:
            # A fresh MTProto session only knows peers it can resolve by username
            target = self.channel
            if not self.channel.startswith("@") and resolved_id.lstrip("-").isdigit():
                target = int(resolved_id)
            return await reader.get_recent_posts(target, limit=self.limit)

    async def fetch(self) -> FetchResult:
        resolved_id = await self.resolve_channel()
        last_error: Optional[Exception] = None

        try:
            posts = await self._from_updates(resolved_id)
            logger.info("Found %d posts from %s in updates", len(posts), self.channel)
            if posts:
                return FetchResult(messages=posts, source=SOURCE_LIVE)
        except Exception as e:
            logger.warning("Fetching channel updates failed: %s", e)
            last_error = e

        if self.history_factory is not None:
            logger.info("No posts through updates, reading channel history instead")
            try:
                posts = await self._from_history(resolved_id)
                if posts:
                    return FetchResult(messages=posts, source=SOURCE_HISTORY)
            except Exception as e:
                logger.warning("Reading channel history failed: %s", e)
                last_error = e

        if last_error is not None and not self.fallback_on_failure:
            raise last_error

        if last_error is None:
            # Upstream answered, there is just nothing new
            return FetchResult(messages=[], source=SOURCE_LIVE)

        logger.warning("All retrieval paths failed, substituting fallback posts")
        return FetchResult(messages=fallback_messages(), source=SOURCE_FALLBACK, error=str(last_error))
