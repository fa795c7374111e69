"""Application configuration."""

import os
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    telegram_bot_token: str
    supabase_url: str
    supabase_service_key: str
    redis_url: str = "redis://localhost:6379/0"
    session_ttl_seconds: int = 24 * 60 * 60
    bcrypt_rounds: int = 12
    notification_interval_seconds: float = 24 * 60 * 60
    notification_run_on_start: bool = False
    notification_timezone: str | None = None
    telegram_webhook_url: str | None = None
    telegram_webhook_secret: str | None = None
    telegram_poll_timeout: int = 30
    http_host: str = "0.0.0.0"  # noqa: S104
    http_port: int = 8080
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_timezone(raw: str | None) -> ZoneInfo | None:
    """Parse the notification timezone; None means the host's local time."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if not cleaned:
        return None
    return ZoneInfo(cleaned)
