"""
Application configuration using Pydantic Settings.

Centralizes all configuration with environment variable support.
"""

import logging
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/srs_engine.db"

    # Review telemetry
    ml_hash_salt: str = ""
    ml_logging_enabled: bool = True
    default_client: str = "bot"
    app_version: Optional[str] = None

    # Scheduling
    # Only decides where "today" starts for due-date arithmetic
    default_timezone: str = "Europe/Stockholm"

    # Environment
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_timezone(name: Optional[str] = None) -> ZoneInfo:
    """Resolve the configured scheduling timezone, falling back to UTC."""
    tz_name = name or get_settings().default_timezone
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {tz_name!r}, falling back to UTC")
        return ZoneInfo("UTC")

