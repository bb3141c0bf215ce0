"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates fields and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Auth state store settings loaded from environment variables.

    Optional:
        AUTH_STATE_DB_PATH: SQLite file holding the auth state table
        AUTH_CACHE_TTL_SECONDS: Sliding expiry for cache entries (unset = never)
        AUTH_SQLITE_JOURNAL_MODE: SQLite journal mode
        AUTH_SQLITE_SYNCHRONOUS: SQLite synchronous level
        AUTH_SQLITE_CACHE_SIZE_KB: SQLite page cache size in KiB
        LOG_LEVEL: Logging level
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    AUTH_STATE_DB_PATH: Path = Field(
        default=Path(".auth") / "auth_state.db",
        description="SQLite database file for auth state",
    )
    AUTH_CACHE_TTL_SECONDS: float | None = Field(
        default=None,
        ge=0.0,
        description="Seconds an untouched cache entry stays valid (None or 0 = no expiry)",
    )

    # SQLite tuning
    AUTH_SQLITE_JOURNAL_MODE: Literal["WAL", "DELETE", "TRUNCATE", "PERSIST", "MEMORY", "OFF"] = Field(
        default="WAL", description="SQLite journal_mode pragma"
    )
    AUTH_SQLITE_SYNCHRONOUS: Literal["OFF", "NORMAL", "FULL", "EXTRA"] = Field(
        default="NORMAL", description="SQLite synchronous pragma"
    )
    AUTH_SQLITE_CACHE_SIZE_KB: int = Field(
        default=8000, ge=0, description="SQLite page cache size in KiB"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )

    @field_validator("AUTH_SQLITE_JOURNAL_MODE", "AUTH_SQLITE_SYNCHRONOUS", "LOG_LEVEL", mode="before")
    @classmethod
    def normalize_upper(cls, v: object) -> object:
        """Accept lowercase values from the environment."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def cache_ttl_seconds(self) -> float | None:
        """Cache TTL with 0 normalized to None (no expiry)."""
        if not self.AUTH_CACHE_TTL_SECONDS:
            return None
        return self.AUTH_CACHE_TTL_SECONDS

    def ensure_directories(self) -> None:
        """Create the database's parent directory if it doesn't exist."""
        self.AUTH_STATE_DB_PATH.parent.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
