# dealfeed/routers/feed_router.py
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from dealfeed import schemas
from dealfeed.config import Settings, get_settings
from dealfeed.controllers import feed_controller
from dealfeed.dependencies import get_store
from dealfeed.services.deal_store import PRICE_RANGES, DealStore, FeedQuery

router = APIRouter()


@router.get("/messages", response_model=schemas.FeedResponse)
def list_messages(
    limit: int = Query(20, ge=1, le=100),
    page: int = Query(1, ge=1),
    store_name: Optional[str] = Query(None, alias="store"),
    price_range: Optional[str] = Query(
        None, alias="priceRange", pattern="^(" + "|".join(PRICE_RANGES) + ")$"
    ),
    after: Optional[int] = Query(None, description="Epoch milliseconds"),
    store: DealStore = Depends(get_store),
    config: Settings = Depends(get_settings),
):
    query = FeedQuery(
        page=page,
        limit=limit,
        store=store_name,
        price_range=price_range,
        after=datetime.fromtimestamp(after / 1000, tz=timezone.utc) if after else None,
    )
    return feed_controller.list_feed_messages(store, query, dev_mode=config.dev_mode)
