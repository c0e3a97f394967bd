# dealfeed/dependencies.py
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from dealfeed.config import Settings, get_settings
from dealfeed.controllers.poller_controller import select_store
from dealfeed.database import get_db
from dealfeed.services.deal_store import DealStore


def get_store(
    db: Optional[Session] = Depends(get_db),
    config: Settings = Depends(get_settings),
) -> DealStore:
    return select_store(config, db)
