# dealfeed/controllers/feed_controller.py
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from urllib.parse import parse_qs, urlparse

from dealfeed.schemas import DealRecord, FeedMessage, FeedMetadata, FeedResponse, Pagination
from dealfeed.services.deal_store import DealStore, FeedQuery

logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE = "/images/deals/deal-placeholder.png"


def _placeholder_deals(now: datetime) -> List[DealRecord]:
    def deal(message_id, title, price, link, photo, minutes_ago, store):
        return DealRecord(
            telegram_message_id=message_id,
            title=title,
            text=title,
            price=price,
            price_numeric=float(price.lstrip("$")),
            links=[link],
            photo_url=photo,
            store=store,
            category="Deal",
            date=now - timedelta(minutes=minutes_ago),
            created_at=now,
        )

    return [
        deal(1, "Apple AirPods Pro (2nd Gen) with MagSafe Case", "$189.99",
             "https://amzn.to/example1", "/images/deals/airpods.jpg", 5, "Amazon"),
        deal(2, "Ninja Foodi 10-in-1 Pressure Cooker & Air Fryer", "$129.99",
             "https://amzn.to/example2", "/images/deals/ninja.jpg", 30, "Amazon"),
        deal(3, "Steel Cash Box with Money Tray, Black Safety Box", "$9.99",
             "https://www.amazon.com/dp/B0F1CX4VSH/?tag=salesaholics99-20", PLACEHOLDER_IMAGE, 60, "Amazon"),
        deal(4, "Home Depot Memorial Day Sale with up to 40% off!", "$24.99",
             "https://homedepot.com/example4", "/images/stores/home-depot.png", 90, "Home Depot"),
        deal(5, "Women's Casual Joggers with Pockets, Lightweight Sweatpants", "$14.50",
             "https://www.amazon.com/dp/example5/?tag=salesaholics99-20", PLACEHOLDER_IMAGE, 120, "Amazon"),
    ]


def affiliate_tag(url: str) -> str:
    return parse_qs(urlparse(url).query).get("tag", [""])[0]


def to_feed_message(record: DealRecord) -> FeedMessage:
    url = record.links[0] if record.links else ""
    date = record.date if record.date.tzinfo else record.date.replace(tzinfo=timezone.utc)
    return FeedMessage(
        id=record.telegram_message_id,
        title=record.title or "Product Deal",
        price=record.price or "Check price",
        url=url,
        image_url=record.photo_url or PLACEHOLDER_IMAGE,
        date=int(date.timestamp() * 1000),
        tag=affiliate_tag(url),
        store=record.store or "Unknown",
        category=record.category or "Deal",
    )


def _page(records: List[DealRecord], total: int, query: FeedQuery, source: str,
          error: Optional[str] = None) -> FeedResponse:
    return FeedResponse(
        messages=[to_feed_message(r) for r in records],
        pagination=Pagination(
            page=query.page,
            limit=query.limit,
            total=total,
            has_more=query.offset + len(records) < total,
        ),
        metadata=FeedMetadata(
            generated=datetime.now(timezone.utc).isoformat(),
            source=source,
            error=error,
        ),
    )


def _placeholder_page(query: FeedQuery, source: str, error: Optional[str] = None,
                      apply_filters: bool = False) -> FeedResponse:
    deals = _placeholder_deals(datetime.now(timezone.utc))
    if apply_filters:
        deals = [d for d in deals if query.matches(d)]
    return _page(deals[query.offset:query.offset + query.limit], len(deals), query, source, error)


def list_feed_messages(store: DealStore, query: FeedQuery, dev_mode: bool = False) -> FeedResponse:
    """The stored feed, newest first. Falls back to placeholder deals rather than an empty page."""
    if dev_mode:
        logger.info("Using mock feed messages")
        return _placeholder_page(query, source="mock", apply_filters=True)

    try:
        records, total = store.list_messages(query)
    except Exception as e:
        logger.error("Database error, falling back to mock data", exc_info=True)
        return _placeholder_page(query, source="mock_db_error", error=str(e))

    logger.info("Retrieved %d messages from database", len(records))
    if not records:
        logger.info("No data found in database, using mock data as fallback")
        return _placeholder_page(query, source="mock_fallback")

    return _page(records, total, query, source="database")
