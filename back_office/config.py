"""
Application configuration.

Values come from environment variables; a .env file in the
working directory is loaded first for local development.
Connection strings and credentials are never hardcoded.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings:
    """Settings for the back office service."""

    APP_NAME: str = "Branch Back Office"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = _flag("DEBUG")

    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # PostgreSQL in production. SQLite (tests) ignores FOR UPDATE
    # but supports the ON CONFLICT upserts.
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/back_office"
    )
    DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "5"))
    DB_MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    SQL_ECHO: bool = _flag("SQL_ECHO")

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Accounts and registers opened without a currency get this one
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "USD").upper()

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    """Build the settings once per process."""
    return Settings()
