"""Application settings and configuration.

This module defines all configuration options for Premiarr. Settings are
loaded from environment variables (or a `.env` file) with sensible defaults.
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Premiarr settings loaded from environment variables."""

    # Telegram
    telegram_bot_token: str = Field(alias="TELEGRAM_BOT_TOKEN")
    telegram_chat_id: str = Field(alias="TELEGRAM_CHAT_ID")
    telegram_topic_id: int | None = Field(default=None, alias="TELEGRAM_TOPIC_ID")
    telegram_api_base: str = Field(
        default="https://api.telegram.org",
        alias="TELEGRAM_API_BASE",
    )
    telegram_poll_timeout_seconds: int = Field(
        default=30,
        alias="TELEGRAM_POLL_TIMEOUT_SECONDS",
    )

    # Jellyseerr / Overseerr
    seerr_url: str = Field(alias="SEERR_URL")
    seerr_api_key: str = Field(alias="SEERR_API_KEY")

    # Schedule and run mode
    daily_cron: str = Field(default="0 8 * * *", alias="DAILY_CRON")
    run_mode: Literal["daemon", "cron"] = Field(default="daemon", alias="RUN_MODE")
    run_on_startup: bool = Field(default=False, alias="RUN_ON_STARTUP")

    # Rotten Tomatoes browse filters
    rt_tv_filter: str = Field(default="critics:fresh~sort:newest", alias="RT_TV_FILTER")
    rt_movie_filter: str = Field(
        default="critics:fresh~sort:newest",
        alias="RT_MOVIE_FILTER",
    )

    # Storage
    db_path: str = Field(default="./data/premiarr.db", alias="DB_PATH")

    # Logging
    log_level: str = Field(default="info", alias="LOG_LEVEL")

    # Outbound HTTP and delivery
    http_timeout_seconds: float = Field(default=15.0, alias="HTTP_TIMEOUT_SECONDS")
    send_delay_seconds: float = Field(default=0.5, alias="SEND_DELAY_SECONDS")
    delivery_max_attempts: int = Field(default=5, alias="DELIVERY_MAX_ATTEMPTS")
    delivery_base_delay_seconds: float = Field(
        default=1.0,
        alias="DELIVERY_BASE_DELAY_SECONDS",
    )
    delivery_rate_limit_margin_seconds: float = Field(
        default=1.0,
        alias="DELIVERY_RATE_LIMIT_MARGIN_SECONDS",
    )

    # Status API
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("telegram_topic_id", mode="before")
    @classmethod
    def _blank_topic_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("run_mode", "log_level", mode="before")
    @classmethod
    def _lowercase(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def database_url(self) -> str:
        """Return the SQLAlchemy URL for the notification ledger."""
        return f"sqlite:///{self.db_path}"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore[call-arg]
    return _settings
