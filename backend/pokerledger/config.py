"""Application configuration using Pydantic BaseSettings."""

import logging
import os
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("pokerledger.config")

_DISCORD_WEBHOOK_PREFIX = "https://discord.com/api/webhooks/"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    # MongoDB Configuration
    MONGO_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "pokerledger"

    # Session defaults
    DEFAULT_CHIP_VALUE: float = 0.5
    CURRENCY_SYMBOL: str = "฿"
    DEFAULT_BUY_IN: int = 400
    RECENT_SESSION_DAYS: int = 30

    # Persistence timing (seconds)
    SAVE_DEBOUNCE_SECONDS: float = 1.0
    SUBSCRIBE_POLL_SECONDS: float = 2.0

    # Active session services kept in memory
    MAX_ACTIVE_SESSIONS: int = 50
    SESSION_IDLE_SECONDS: float = 30 * 60

    # Notifications
    DISCORD_WEBHOOK_URL: Optional[str] = None

    # Settlement payments
    PROMPTPAY_BASE_URL: str = "https://promptpay.io"

    # CORS Configuration
    # Comma-separated list of allowed origins, or "*" for all origins
    CORS_ORIGINS: str = ""

    # Application Metadata
    APP_VERSION: str = "1.0.0"

    @field_validator("DISCORD_WEBHOOK_URL", mode="before")
    @classmethod
    def validate_webhook_url(cls, v):
        """Treat a blank webhook as unset and warn about non-Discord URLs."""
        if v is None or not str(v).strip():
            return None
        v = str(v).strip()
        if not v.startswith(_DISCORD_WEBHOOK_PREFIX):
            logger.warning(
                "DISCORD_WEBHOOK_URL does not look like a Discord webhook; "
                "webhook notifications will be skipped."
            )
        return v

    @property
    def discord_webhook_enabled(self) -> bool:
        return bool(
            self.DISCORD_WEBHOOK_URL
            and self.DISCORD_WEBHOOK_URL.startswith(_DISCORD_WEBHOOK_PREFIX)
        )

    @property
    def cors_origins(self) -> list[str]:
        """Return list of allowed CORS origins.

        If CORS_ORIGINS is empty, allows the local dev servers in development
        but returns empty in production.
        """
        if self.CORS_ORIGINS:
            if self.CORS_ORIGINS == "*":
                return ["*"]
            return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

        is_production = os.getenv("ENVIRONMENT") == "production"
        if is_production:
            logger.warning(
                "CORS_ORIGINS not configured in production. "
                "Set CORS_ORIGINS environment variable."
            )
            return []

        return [
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ]


# Global settings instance
settings = Settings()
