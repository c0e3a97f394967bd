# dealfeed/services/history_service.py
import logging
from typing import List, Optional, Union

from pyrogram import Client, enums
from pyrogram.errors import FloodWait

from dealfeed.schemas import ChannelMessage, Chat, MessageEntity, PhotoSize

logger = logging.getLogger(__name__)


def to_channel_message(message) -> Optional[ChannelMessage]:
    """Maps a Pyrogram message onto the Bot API message shape."""
    content = message.text or message.caption
    if not content and not message.photo:
        return None

    chat = None
    if message.chat:
        chat = Chat(id=message.chat.id, username=message.chat.username, title=message.chat.title)

    photo = None
    if message.photo:
        photo = [
            PhotoSize(
                file_id=message.photo.file_id,
                width=message.photo.width or 0,
                height=message.photo.height or 0,
            )
        ]

    entities = [
        MessageEntity(
            type="url" if e.type == enums.MessageEntityType.URL else "text_link",
            offset=e.offset,
            length=e.length,
            url=e.url,
        )
        for e in (message.entities or message.caption_entities or [])
        if e.type in (enums.MessageEntityType.URL, enums.MessageEntityType.TEXT_LINK)
    ]

    return ChannelMessage(
        message_id=message.id,
        chat=chat,
        date=int(message.date.timestamp()) if message.date else None,
        text=message.text,
        caption=message.caption,
        photo=photo,
        entities=entities or None,
    )


class ChannelHistoryReader:
    """Reads recent channel history over MTProto when the Bot API has nothing."""

    def __init__(self, api_id: int, api_hash: str, session_name: str = "deal_feed_history"):
        self.session_name = session_name
        self.client = Client(
            name=self.session_name,
            api_id=api_id,
            api_hash=api_hash,
            no_updates=True,
        )

    async def get_recent_posts(self, channel_name: Union[int, str], limit: int = 100) -> List[ChannelMessage]:
        posts = []
        try:
            async for message in self.client.get_chat_history(channel_name, limit=limit):
                post = to_channel_message(message)
                if post:
                    posts.append(post)
        except FloodWait as e:
            # Not worth waiting inside a scheduled poll; the next run picks it up
            logger.warning("History read rate limited for %s seconds", e.value)
            raise
        logger.info("Read %d posts from %s history", len(posts), channel_name)
        return posts

    async def __aenter__(self):
        await self.client.start()

        # Fetching dialogs fills the peer cache so numeric channel ids resolve
        logger.info("Initializing channel cache from dialogs")
        async for _ in self.client.get_dialogs(limit=200):
            pass
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.client and self.client.is_connected:
            await self.client.stop()
