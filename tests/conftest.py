import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dealfeed.config import Settings
from dealfeed.database import Base
from tests.helpers import CHANNEL_USERNAME


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def live_settings():
    return Settings(
        _env_file=None,
        telegram_bot_token="TEST",
        telegram_channel_id=f"@{CHANNEL_USERNAME}",
        database_url_override="sqlite://",
        api_id=None,
        api_hash=None,
    )


@pytest.fixture
def dev_settings():
    return Settings(
        _env_file=None,
        telegram_bot_token=None,
        database_url_override=None,
        db_type=None,
        api_id=None,
        api_hash=None,
    )
