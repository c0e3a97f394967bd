# dealfeed/routers/webhook_router.py
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from dealfeed import schemas
from dealfeed.config import Settings, get_settings
from dealfeed.controllers import webhook_controller
from dealfeed.dependencies import get_store
from dealfeed.services.deal_store import DealStore
from dealfeed.services.media_resolver import MediaResolver
from dealfeed.services.telegram_service import TelegramBotApi

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook", response_model=schemas.WebhookResponse)
async def receive_update(
    request: Request,
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
    store: DealStore = Depends(get_store),
    config: Settings = Depends(get_settings),
):
    if not webhook_controller.verify_webhook_secret(
        config.telegram_webhook_secret, x_telegram_bot_api_secret_token
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        payload = json.loads(await request.body())
    except ValueError:
        raise HTTPException(status_code=400, detail="Body is not valid JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")

    if not config.telegram_bot_token:
        return await webhook_controller.handle_webhook_update(
            payload, store, MediaResolver(None), partner_tag=config.amazon_partner_tag
        )

    async with TelegramBotApi(config.telegram_bot_token, timeout=config.http_timeout_seconds) as bot_api:
        return await webhook_controller.handle_webhook_update(
            payload, store, MediaResolver(bot_api), partner_tag=config.amazon_partner_tag
        )
