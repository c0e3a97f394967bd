# dealfeed/models.py
from datetime import datetime, timezone

from sqlalchemy import JSON, BigInteger, Boolean, Column, DateTime, Float, Integer, String, Text

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DealMessage(Base):
    __tablename__ = "telegram_messages"
    telegram_message_id = Column(BigInteger, primary_key=True, autoincrement=False)
    channel_id = Column(String, index=True)
    text = Column(Text, nullable=False, default="")
    title = Column(String, nullable=False, default="")
    price = Column(String, nullable=True)
    price_numeric = Column(Float, nullable=True, index=True)
    store = Column(String, nullable=True, index=True)
    category = Column(String, nullable=False, default="Other")
    links = Column(JSON, nullable=False, default=list)
    has_photo = Column(Boolean, nullable=False, default=False)
    photo_file_id = Column(String, nullable=True)
    photo_url = Column(String, nullable=True)
    date = Column(DateTime(timezone=True), index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class BotRun(Base):
    __tablename__ = "telegram_bot_runs"
    id = Column(Integer, primary_key=True)
    run_timestamp = Column(DateTime(timezone=True), default=utcnow, index=True)
    messages_found = Column(Integer, nullable=False, default=0)
    messages_processed = Column(Integer, nullable=False, default=0)
    success_rate = Column(Float, nullable=False, default=0)
    error = Column(Text, nullable=True)
    source = Column(String, nullable=True)
