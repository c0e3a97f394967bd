# dealfeed/config.py
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    db_type: Optional[str] = None
    db_username: Optional[str] = None
    db_password: Optional[str] = None
    db_host: Optional[str] = None
    db_name: Optional[str] = None
    database_url_override: Optional[str] = Field(default=None, alias="DATABASE_URL")

    telegram_bot_token: Optional[str] = None
    telegram_channel_id: str = "@salesahoclic"
    telegram_webhook_secret: Optional[str] = None

    # MTProto credentials for the channel history reader (optional)
    api_id: Optional[int] = None
    api_hash: Optional[str] = None
    history_session_name: str = "deal_feed_history"

    amazon_partner_tag: str = "salesaholics99-20"

    # Polling behaviour
    poll_batch_size: int = 5        # Concurrent messages per batch
    poll_max_attempts: int = 3      # Attempts before a run is reported as failed
    poll_backoff_base: float = 2    # Seconds, raised to the attempt number
    poll_fetch_limit: int = 100
    http_timeout_seconds: float = 10
    fallback_on_failure: bool = True

    log_level: str = "INFO"

    @property
    def database_url(self) -> Optional[str]:
        if self.database_url_override:
            return self.database_url_override
        if not all([self.db_type, self.db_username, self.db_host, self.db_name]):
            return None
        return f"{self.db_type}://{self.db_username}:{self.db_password or ''}@{self.db_host}/{self.db_name}"

    @property
    def history_enabled(self) -> bool:
        return bool(self.api_id and self.api_hash)

    @property
    def dev_mode(self) -> bool:
        return not (self.telegram_bot_token and self.database_url)


settings = Settings()


# Dependency so routes (and tests) can swap the configuration
def get_settings() -> Settings:
    return settings
