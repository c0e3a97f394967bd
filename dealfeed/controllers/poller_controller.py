# dealfeed/controllers/poller_controller.py
import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from sqlalchemy.orm import Session

from dealfeed.config import Settings, settings as default_settings
from dealfeed.schemas import ChannelMessage, DealRecord, RunRecord
from dealfeed.services.deal_store import DealStore, InMemoryDealStore, SqlDealStore
from dealfeed.services.media_resolver import MediaResolver
from dealfeed.services.normalizer import filter_new, normalize_message
from dealfeed.services.telegram_service import TelegramBotApi
from dealfeed.services.update_sources import FallbackUpdateSource, LiveUpdateSource, UpdateSource

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class PollResult:
    processed: int
    total: int
    source: str
    messages: List[DealRecord] = field(default_factory=list)
    error: Optional[str] = None

    def to_run_record(self) -> RunRecord:
        return RunRecord(
            run_timestamp=datetime.now(timezone.utc),
            messages_found=self.total,
            messages_processed=self.processed,
            success_rate=self.processed / self.total if self.total > 0 else 1.0,
            error=self.error,
            source=self.source,
        )


@dataclass
class PollComponents:
    source: UpdateSource
    store: DealStore
    media: MediaResolver
    dev_mode: bool


async def process_in_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int = 5,
) -> List[R]:
    """Runs ``worker`` over ``items`` in sequential groups of at most ``batch_size``."""
    results: List[R] = []
    for start in range(0, len(items), batch_size):
        chunk = items[start:start + batch_size]
        results.extend(await asyncio.gather(*(worker(item) for item in chunk)))
    return results


async def process_message(
    message: ChannelMessage,
    store: DealStore,
    media: MediaResolver,
    partner_tag: Optional[str] = None,
) -> Optional[DealRecord]:
    """Normalizes, resolves the photo and stores one post. Returns None on failure."""
    try:
        record = normalize_message(message, partner_tag=partner_tag)
        logger.info("Processing message %s: %s", record.telegram_message_id, record.title[:30])
        if record.photo_file_id:
            record.photo_url = await media.resolve(record.photo_file_id)
        if not store.insert_message(record):
            return None
    except Exception:
        logger.error("Error processing message %s", getattr(message, "message_id", None), exc_info=True)
        return None
    return record


async def run_poll_attempt(
    components: PollComponents,
    partner_tag: Optional[str] = None,
    batch_size: int = 5,
) -> PollResult:
    store = components.store
    watermark = store.last_message_id()
    fetched = await components.source.fetch()

    if fetched.is_fallback and not components.dev_mode:
        # Placeholder posts are handed back to the caller but never written
        records = [normalize_message(m, partner_tag=partner_tag) for m in fetched.messages]
        result = PollResult(
            processed=0, total=len(records), source=fetched.source, messages=records, error=fetched.error
        )
        store.log_run(result.to_run_record())
        return result

    fresh = filter_new(fetched.messages, watermark)
    logger.info("Found %d new channel messages to process (watermark %d)", len(fresh), watermark)

    outcomes = await process_in_batches(
        fresh,
        lambda message: process_message(message, store, components.media, partner_tag),
        batch_size=batch_size,
    )
    stored = [record for record in outcomes if record is not None]
    result = PollResult(processed=len(stored), total=len(fresh), source=fetched.source, messages=stored)

    if fresh:
        logger.info(
            "Successfully processed %d/%d messages (%.1f%%)",
            result.processed, result.total, result.processed / result.total * 100,
        )
    else:
        logger.info("No new messages to process")

    store.log_run(result.to_run_record())
    return result


async def poll_for_messages(
    components: PollComponents,
    max_attempts: int = 3,
    backoff_base: float = 2,
    partner_tag: Optional[str] = None,
    batch_size: int = 5,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PollResult:
    """
    Bounded retry loop around one poll attempt.

    Each failed attempt waits ``backoff_base ** attempt`` seconds. Once
    ``max_attempts`` attempts have failed, a failure run record carrying the
    last error is written and the error is re-raised.
    """
    attempt = 0
    while True:
        try:
            return await run_poll_attempt(components, partner_tag=partner_tag, batch_size=batch_size)
        except Exception as e:
            attempt += 1
            logger.error("Error polling for messages (attempt %d/%d): %s", attempt, max_attempts, e, exc_info=True)
            if attempt >= max_attempts:
                components.store.log_run(
                    RunRecord(
                        run_timestamp=datetime.now(timezone.utc),
                        messages_found=0,
                        messages_processed=0,
                        success_rate=0.0,
                        error=str(e),
                    )
                )
                raise
            delay = backoff_base ** attempt
            logger.info("Retrying in %s seconds...", delay)
            await sleep(delay)


def select_store(config: Settings, db: Optional[Session]) -> DealStore:
    if config.dev_mode or db is None:
        return InMemoryDealStore()
    return SqlDealStore(db)


@asynccontextmanager
async def poll_components(config: Settings, db: Optional[Session]):
    """Picks live or fallback collaborators once, based on configuration."""
    if config.dev_mode:
        logger.info("Running in DEV_MODE with fallback data (credentials missing)")
        yield PollComponents(
            source=FallbackUpdateSource(),
            store=select_store(config, db),
            media=MediaResolver(None),
            dev_mode=True,
        )
        return

    history_factory = None
    if config.history_enabled:
        # Pyrogram is only loaded when MTProto credentials are configured
        from dealfeed.services.history_service import ChannelHistoryReader

        def history_factory():
            return ChannelHistoryReader(config.api_id, config.api_hash, config.history_session_name)

    async with TelegramBotApi(config.telegram_bot_token, timeout=config.http_timeout_seconds) as bot_api:
        yield PollComponents(
            source=LiveUpdateSource(
                bot_api,
                config.telegram_channel_id,
                history_factory=history_factory,
                limit=config.poll_fetch_limit,
                fallback_on_failure=config.fallback_on_failure,
            ),
            store=select_store(config, db),
            media=MediaResolver(bot_api),
            dev_mode=False,
        )


async def run_scheduled_poll(
    db: Optional[Session],
    config: Optional[Settings] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> PollResult:
    config = config or default_settings
    async with poll_components(config, db) as components:
        return await poll_for_messages(
            components,
            max_attempts=config.poll_max_attempts,
            backoff_base=config.poll_backoff_base,
            partner_tag=config.amazon_partner_tag,
            batch_size=config.poll_batch_size,
            sleep=sleep,
        )
