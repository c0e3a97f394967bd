# dealfeed/services/telegram_service.py
import json
import logging
from typing import Any, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from dealfeed.schemas import Chat, Update

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


class TelegramApiError(Exception):
    """Raised when the Bot API answers with ok=false or an unreadable payload."""

    def __init__(self, method: str, description: str):
        self.method = method
        self.description = description
        super().__init__(f"Telegram {method} failed: {description}")


class TelegramBotApi:
    """Thin async client for the handful of Bot API methods the poller needs."""

    def __init__(
        self,
        bot_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = TELEGRAM_API_BASE,
    ):
        self.bot_token = bot_token
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=f"{self.base_url}/bot{bot_token}",
            timeout=timeout,
            transport=transport,
        )

    async def _call(self, method: str, **params: Any) -> Any:
        response = await self.client.get(f"/{method}", params=params)
        try:
            payload = response.json()
        except ValueError:
            response.raise_for_status()
            raise TelegramApiError(method, "response is not JSON")

        if not isinstance(payload, dict) or not payload.get("ok"):
            description = payload.get("description") if isinstance(payload, dict) else None
            raise TelegramApiError(method, description or f"HTTP {response.status_code}")
        return payload.get("result")

    async def get_chat(self, chat_id: str) -> Chat:
        result = await self._call("getChat", chat_id=chat_id)
        try:
            return Chat.model_validate(result)
        except ValidationError as e:
            raise TelegramApiError("getChat", f"malformed chat: {e}") from e

    async def get_updates(
        self,
        offset: Optional[int] = None,
        limit: int = 100,
        allowed_updates: Sequence[str] = ("channel_post",),
    ) -> List[Update]:
        params = {"limit": limit, "allowed_updates": json.dumps(list(allowed_updates))}
        # A negative offset makes Telegram drop everything but the last update
        if offset is not None:
            params["offset"] = offset
        result = await self._call("getUpdates", **params)
        updates = []
        for raw in result or []:
            try:
                updates.append(Update.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping malformed update: %s", raw)
        return updates

    async def get_file_path(self, file_id: str) -> str:
        result = await self._call("getFile", file_id=file_id)
        file_path = (result or {}).get("file_path")
        if not file_path:
            raise TelegramApiError("getFile", "no file_path in response")
        return file_path

    def file_url(self, file_path: str) -> str:
        return f"{self.base_url}/file/bot{self.bot_token}/{file_path}"

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
