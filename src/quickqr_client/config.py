"""Application configuration."""

import os
from datetime import tzinfo
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

DEFAULT_CREDENTIAL_KEY = "quickqr.auth_token"


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    api_base_url: str = "http://localhost:5000/api"
    http_timeout_seconds: float = 10.0
    credential_storage_path: str = "~/.quickqr/credentials.json"
    credential_storage_key: str = DEFAULT_CREDENTIAL_KEY
    history_retry_attempts: int = 1
    history_retry_delay_seconds: float = 0.3
    timezone: str | None = None
    sign_in_path: str = "/login"
    landing_path: str = "/dashboard"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_prefix="QUICKQR_",
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def resolve_timezone(raw: str | None) -> tzinfo | None:
    """Resolve the configured timezone; ``None`` means the system local zone."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned in {"", "local"}:
        return None
    return ZoneInfo(cleaned)
