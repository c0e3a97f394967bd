import asyncio
import json

import httpx
import pytest

from dealfeed.services.media_resolver import MediaResolver
from dealfeed.services.telegram_service import TelegramApiError, TelegramBotApi


def _bot_api(handler) -> TelegramBotApi:
    return TelegramBotApi("TOKEN", transport=httpx.MockTransport(handler))


def test_get_chat_returns_chat():
    seen = {}

    def handler(request: httpx.Request):
        seen["path"] = request.url.path
        seen["chat_id"] = request.url.params["chat_id"]
        return httpx.Response(200, json={"ok": True, "result": {"id": -100123, "username": "deals"}})

    async def scenario():
        async with _bot_api(handler) as api:
            return await api.get_chat("@deals")

    chat = asyncio.run(scenario())

    assert chat.id == -100123
    assert seen == {"path": "/botTOKEN/getChat", "chat_id": "@deals"}


def test_get_updates_parses_channel_posts_and_skips_malformed():
    def handler(request: httpx.Request):
        assert json.loads(request.url.params["allowed_updates"]) == ["channel_post"]
        assert "offset" not in request.url.params
        assert request.url.params["limit"] == "100"
        return httpx.Response(
            200,
            json={
                "ok": True,
                "result": [
                    {"update_id": 1, "channel_post": {"message_id": 5, "text": "hi", "chat": {"id": 1}}},
                    {"update_id": "not-a-number"},
                ],
            },
        )

    async def scenario():
        async with _bot_api(handler) as api:
            return await api.get_updates(limit=100)

    updates = asyncio.run(scenario())

    assert len(updates) == 1
    assert updates[0].post.message_id == 5


def test_api_error_on_not_ok_payload():
    def handler(request: httpx.Request):
        return httpx.Response(400, json={"ok": False, "description": "Bad Request: chat not found"})

    async def scenario():
        async with _bot_api(handler) as api:
            await api.get_chat("@missing")

    with pytest.raises(TelegramApiError, match="chat not found"):
        asyncio.run(scenario())


def test_media_resolver_builds_file_url():
    def handler(request: httpx.Request):
        return httpx.Response(200, json={"ok": True, "result": {"file_id": "abc", "file_path": "photos/file_1.jpg"}})

    async def scenario():
        async with _bot_api(handler) as api:
            return await MediaResolver(api).resolve("abc")

    assert asyncio.run(scenario()) == "https://api.telegram.org/file/botTOKEN/photos/file_1.jpg"


def test_media_resolver_returns_none_on_failure():
    def handler(request: httpx.Request):
        raise httpx.ConnectError("boom", request=request)

    async def scenario():
        async with _bot_api(handler) as api:
            return await MediaResolver(api).resolve("abc")

    assert asyncio.run(scenario()) is None


def test_media_resolver_without_client_never_calls_out():
    assert asyncio.run(MediaResolver(None).resolve("abc")) is None
