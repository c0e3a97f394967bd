# dealfeed/controllers/webhook_controller.py
import hmac
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from dealfeed.controllers.poller_controller import process_message
from dealfeed.schemas import Update, WebhookResponse
from dealfeed.services.deal_store import DealStore
from dealfeed.services.media_resolver import MediaResolver

logger = logging.getLogger(__name__)


def verify_webhook_secret(secret: Optional[str], header_value: Optional[str]) -> bool:
    if not secret:
        logger.warning("Webhook secret not configured, verification disabled")
        return True
    if not header_value:
        logger.error("Missing X-Telegram-Bot-Api-Secret-Token header")
        return False
    if not hmac.compare_digest(header_value, secret):
        logger.error("Invalid webhook token provided")
        return False
    return True


async def handle_webhook_update(
    payload: Dict[str, Any],
    store: DealStore,
    media: MediaResolver,
    partner_tag: Optional[str] = None,
) -> WebhookResponse:
    try:
        update = Update.model_validate(payload)
    except ValidationError as e:
        logger.warning("Unreadable webhook update: %s", e)
        return WebhookResponse(success=False, error="No valid message found in webhook data")

    message = update.post
    if message is None:
        return WebhookResponse(success=False, error="No valid message found in webhook data")

    try:
        watermark = store.last_message_id()
    except Exception as e:
        logger.error("Could not read last processed message id", exc_info=True)
        return WebhookResponse(success=False, id=message.message_id, error=str(e))

    if message.message_id <= watermark:
        logger.info("Skipping already processed message %s", message.message_id)
        return WebhookResponse(success=False, id=message.message_id, error="Message already processed")

    record = await process_message(message, store, media, partner_tag=partner_tag)
    if record is None:
        return WebhookResponse(success=False, id=message.message_id, error="Message was not stored")

    logger.info("Successfully processed message %s", message.message_id)
    return WebhookResponse(success=True, id=message.message_id)
