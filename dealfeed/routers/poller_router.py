# dealfeed/routers/poller_router.py
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from dealfeed import schemas
from dealfeed.config import Settings, get_settings
from dealfeed.controllers import poller_controller
from dealfeed.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.api_route(
    "/poll",
    methods=["GET", "POST"],
    response_model=schemas.PollResponse,
    responses={500: {"model": schemas.PollErrorResponse}},
)
async def poll_channel(
    db: Optional[Session] = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    logger.info("Telegram poll started (%s)", "Development (Mock Mode)" if config.dev_mode else "Production")
    try:
        result = await poller_controller.run_scheduled_poll(db, config)
    except Exception as e:
        logger.error("Error in Telegram poll", exc_info=True)
        body = schemas.PollErrorResponse(
            error=str(e),
            timestamp=datetime.now(timezone.utc).isoformat(),
            dev_mode=config.dev_mode,
        )
        return JSONResponse(status_code=500, content=body.model_dump())

    return schemas.PollResponse(
        processed=result.processed,
        total=result.total,
        source=result.source,
        timestamp=datetime.now(timezone.utc).isoformat(),
        dev_mode=config.dev_mode,
    )
