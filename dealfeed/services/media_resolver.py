# dealfeed/services/media_resolver.py
import logging
from typing import Optional

from dealfeed.services.telegram_service import TelegramBotApi

logger = logging.getLogger(__name__)


class MediaResolver:
    """Turns a photo file_id into a downloadable URL. Never raises."""

    def __init__(self, bot_api: Optional[TelegramBotApi] = None):
        self.bot_api = bot_api

    async def resolve(self, file_id: Optional[str]) -> Optional[str]:
        if not file_id or self.bot_api is None:
            return None
        try:
            file_path = await self.bot_api.get_file_path(file_id)
        except Exception as e:
            logger.warning("Could not resolve photo %s: %s", file_id, e)
            return None
        return self.bot_api.file_url(file_path)
