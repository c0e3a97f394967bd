# dealfeed/services/deal_store.py
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dealfeed.models import BotRun, DealMessage
from dealfeed.schemas import DealRecord, RunRecord

logger = logging.getLogger(__name__)

# price_range query value -> (lower, lower inclusive, upper, upper inclusive)
PRICE_RANGES = {
    "under25": (None, False, 25, False),
    "25to50": (25, True, 50, True),
    "50to100": (50, False, 100, True),
    "over100": (100, False, None, False),
}


class FeedQuery:
    def __init__(
        self,
        page: int = 1,
        limit: int = 20,
        store: Optional[str] = None,
        price_range: Optional[str] = None,
        after: Optional[datetime] = None,
    ):
        self.page = max(page, 1)
        self.limit = max(limit, 1)
        self.store = store
        self.price_range = price_range
        self.after = after

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def matches(self, record: DealRecord) -> bool:
        if self.store and record.store != self.store:
            return False
        if self.after and record.date <= self.after:
            return False
        if self.price_range in PRICE_RANGES:
            lower, lower_inclusive, upper, upper_inclusive = PRICE_RANGES[self.price_range]
            price = record.price_numeric
            if price is None:
                return False
            if lower is not None and (price < lower if lower_inclusive else price <= lower):
                return False
            if upper is not None and (price > upper if upper_inclusive else price >= upper):
                return False
        return True


class DealStore(ABC):
    @abstractmethod
    def last_message_id(self) -> int:
        """Highest persisted external id, 0 when nothing is stored."""

    @abstractmethod
    def insert_message(self, record: DealRecord) -> bool:
        """Insert-only write. Returns False instead of raising."""

    @abstractmethod
    def log_run(self, run: RunRecord) -> None:
        """Appends a run record; failures are logged, not raised."""

    @abstractmethod
    def list_messages(self, query: FeedQuery) -> Tuple[List[DealRecord], int]:
        """A page of messages newest first, plus the total matching count."""

    @abstractmethod
    def count_messages(self, since: Optional[datetime] = None) -> int:
        ...

    @abstractmethod
    def latest_message_at(self) -> Optional[datetime]:
        ...

    @abstractmethod
    def recent_runs(self, limit: int = 10) -> List[RunRecord]:
        ...


class SqlDealStore(DealStore):
    def __init__(self, db: Session):
        self.db = db

    def last_message_id(self) -> int:
        last_id = self.db.query(func.max(DealMessage.telegram_message_id)).scalar()
        logger.info("Last processed message id: %s", last_id or 0)
        return last_id or 0

    def insert_message(self, record: DealRecord) -> bool:
        try:
            self.db.add(DealMessage(**record.model_dump()))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Message %s already stored, skipping", record.telegram_message_id)
            return False
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Error storing message %s", record.telegram_message_id, exc_info=True)
            return False
        return True

    def log_run(self, run: RunRecord) -> None:
        try:
            self.db.add(BotRun(**run.model_dump()))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error("Failed to log run status to database", exc_info=True)

    def list_messages(self, query: FeedQuery) -> Tuple[List[DealRecord], int]:
        q = self.db.query(DealMessage)
        if query.store:
            q = q.filter(DealMessage.store == query.store)
        if query.after:
            q = q.filter(DealMessage.date > query.after)
        if query.price_range in PRICE_RANGES:
            lower, lower_inclusive, upper, upper_inclusive = PRICE_RANGES[query.price_range]
            price = DealMessage.price_numeric
            if lower is not None:
                q = q.filter(price >= lower if lower_inclusive else price > lower)
            if upper is not None:
                q = q.filter(price <= upper if upper_inclusive else price < upper)

        total = q.count()
        rows = (
            q.order_by(DealMessage.date.desc(), DealMessage.telegram_message_id.desc())
            .offset(query.offset)
            .limit(query.limit)
            .all()
        )
        return [DealRecord.model_validate(row) for row in rows], total

    def count_messages(self, since: Optional[datetime] = None) -> int:
        q = self.db.query(func.count(DealMessage.telegram_message_id))
        if since is not None:
            q = q.filter(DealMessage.created_at >= since)
        return q.scalar() or 0

    def latest_message_at(self) -> Optional[datetime]:
        return self.db.query(func.max(DealMessage.created_at)).scalar()

    def recent_runs(self, limit: int = 10) -> List[RunRecord]:
        rows = self.db.query(BotRun).order_by(BotRun.run_timestamp.desc(), BotRun.id.desc()).limit(limit).all()
        return [RunRecord.model_validate(row) for row in rows]


class InMemoryDealStore(DealStore):
    """Development stand-in: keeps rows in memory and logs what it would write."""

    def __init__(self, initial_watermark: int = 100):
        self.initial_watermark = initial_watermark
        self.messages = {}
        self.runs: List[RunRecord] = []

    def last_message_id(self) -> int:
        return max([self.initial_watermark, *self.messages])

    def insert_message(self, record: DealRecord) -> bool:
        if record.telegram_message_id in self.messages:
            return False
        logger.info("DEV_MODE: would store message %s: %s", record.telegram_message_id, record.title)
        self.messages[record.telegram_message_id] = record
        return True

    def log_run(self, run: RunRecord) -> None:
        logger.info("DEV_MODE: run %s", run.model_dump_json())
        self.runs.append(run)

    def list_messages(self, query: FeedQuery) -> Tuple[List[DealRecord], int]:
        matching = sorted(
            (r for r in self.messages.values() if query.matches(r)),
            key=lambda r: (r.date, r.telegram_message_id),
            reverse=True,
        )
        return matching[query.offset:query.offset + query.limit], len(matching)

    def count_messages(self, since: Optional[datetime] = None) -> int:
        return sum(1 for r in self.messages.values() if since is None or r.created_at >= since)

    def latest_message_at(self) -> Optional[datetime]:
        return max((r.created_at for r in self.messages.values()), default=None)

    def recent_runs(self, limit: int = 10) -> List[RunRecord]:
        return list(reversed(self.runs))[:limit]
