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
    """Application settings loaded from environment variables.

    Optional:
        ESI_BASE_URL: Scheme and host of the ESI origin
        ESI_VERSION: Route version segment (latest, dev, v1, ...)
        ESI_DATASOURCE: Datasource query parameter sent with every request
        ESI_USER_AGENT: User-Agent sent to ESI (CCP asks for contact info)
        ESI_ACCESS_TOKEN: Bearer token for StaticTokenProvider
        CACHE_DIR: Directory for cached documents and the cache database
        CACHE_DB_NAME: File name of the SQLite cache database
        HTTP_TIMEOUT: Per-request timeout in seconds
        HTTP_MAX_RETRIES: Attempts per request before giving up
        MAX_PAGES: Hard cap on pages fetched for one paginated resource
        LOG_LEVEL: Logging level
        LOG_FILE: Optional JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ESI origin
    ESI_BASE_URL: str = Field(
        default="https://esi.evetech.net", description="ESI scheme and host"
    )
    ESI_VERSION: str = Field(default="latest", description="ESI route version")
    ESI_DATASOURCE: str = Field(default="tranquility", description="ESI datasource")
    ESI_USER_AGENT: str = Field(
        default="esi-resource-clients",
        description="User-Agent header sent to ESI",
    )
    ESI_ACCESS_TOKEN: str | None = Field(
        default=None, description="Static bearer token (optional)"
    )

    # Cache storage
    CACHE_DIR: Path = Field(default=Path(".cache/esi"), description="Cache directory")
    CACHE_DB_NAME: str = Field(
        default="esi_cache.db", description="SQLite cache database file name"
    )

    # HTTP behavior
    HTTP_TIMEOUT: float = Field(
        default=30.0, gt=0.0, description="Per-request timeout in seconds"
    )
    HTTP_MAX_RETRIES: int = Field(
        default=3, ge=1, le=10, description="Attempts per request"
    )
    MAX_PAGES: int = Field(
        default=100, ge=1, le=1000, description="Hard cap on pages per listing"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON-lines log file")

    @field_validator("ESI_USER_AGENT")
    @classmethod
    def validate_user_agent(cls, v: str) -> str:
        """Validate that ESI_USER_AGENT is not blank."""
        if not v.strip():
            raise ValueError("ESI_USER_AGENT must not be blank")
        return v.strip()

    @field_validator("ESI_BASE_URL")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate the base URL scheme and strip any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("ESI_BASE_URL must start with http:// or https://")
        return v.rstrip("/")

    @property
    def api_root(self) -> str:
        """Base URL including the version segment."""
        version = self.ESI_VERSION.strip("/")
        return f"{self.ESI_BASE_URL}/{version}" if version else self.ESI_BASE_URL

    @property
    def cache_db_path(self) -> Path:
        """Full path of the SQLite cache database."""
        return self.CACHE_DIR / self.CACHE_DB_NAME

    def ensure_directories(self) -> None:
        """Create the cache directory if it doesn't exist."""
        self.CACHE_DIR.mkdir(parents=True, exist_ok=True)

    def redacted_display(self) -> dict[str, str | int | float | None]:
        """Return settings with secrets redacted for display."""
        def redact(value: str | None) -> str | None:
            if value is None:
                return None
            return f"{value[:8]}...{value[-4:]}" if len(value) > 12 else "***"

        return {
            "ESI_BASE_URL": self.ESI_BASE_URL,
            "ESI_VERSION": self.ESI_VERSION,
            "ESI_DATASOURCE": self.ESI_DATASOURCE,
            "ESI_USER_AGENT": self.ESI_USER_AGENT,
            "ESI_ACCESS_TOKEN": redact(self.ESI_ACCESS_TOKEN),
            "CACHE_DIR": str(self.CACHE_DIR),
            "CACHE_DB_NAME": self.CACHE_DB_NAME,
            "HTTP_TIMEOUT": self.HTTP_TIMEOUT,
            "HTTP_MAX_RETRIES": self.HTTP_MAX_RETRIES,
            "MAX_PAGES": self.MAX_PAGES,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


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
