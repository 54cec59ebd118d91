"""Configuration management for the CrewX service."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    host: str
    port: int
    debug: bool
    log_level: str
    session_ttl_minutes: int
    notification_retention_days: int
    gemini_api_key: str | None
    gemini_model: str
    gemini_base_url: str
    qr_verify_timeout_seconds: float
    cors_origins: tuple[str, ...]

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./crewx.db"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            session_ttl_minutes=int(os.getenv("SESSION_TTL_MINUTES", "720")),
            notification_retention_days=int(os.getenv("NOTIFICATION_RETENTION_DAYS", "30")),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-3-flash-preview"),
            gemini_base_url=os.getenv(
                "GEMINI_BASE_URL",
                "https://generativelanguage.googleapis.com/v1beta",
            ),
            qr_verify_timeout_seconds=float(os.getenv("QR_VERIFY_TIMEOUT_SECONDS", "20")),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the service and CLI."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
