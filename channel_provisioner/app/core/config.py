"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development.

Usage:
    from channel_provisioner.app.core.config import settings
    print(settings.PLATFORM_PROVIDER)
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings loaded from environment variables or .env file.

    Precedence: env var > .env file > default value
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ──
    APP_NAME: str = "Notification Channel Provisioner"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── Server ──
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]
    CORS_ALLOW_ALL: bool = True  # False in production

    # ── Management platform ──
    PLATFORM_PROVIDER: str = "simulation"  # simulation | http
    PLATFORM_API_URL: str = "http://localhost:8080/api"
    PLATFORM_API_TOKEN: Optional[str] = None
    PLATFORM_TIMEOUT_SECONDS: float = 30.0
    SIMULATION_USER: Optional[str] = "CONTOSO\\scom-admin"  # None = no session

    # ── Channel defaults ──
    DEFAULT_SMTP_PORT: int = 25
    DEFAULT_RETRY_MINUTES: int = 5
    DEFAULT_AUTHENTICATION: str = "Anonymous"  # Anonymous | Ntlm
    DESCRIPTION_TIMESTAMP_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
