"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates ranges and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from artcache import __version__


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Optional:
        DOWNLOAD_DIR: Directory where downloaded artifacts are stored
        REPOSITORY_ROOT: Repository layout root; artifacts below it are
            evicted together with their parent directory
        TARGET_FREE_SPACE_RATIO: Evict cached artifacts while the free space
            ratio of their volume is below this value (0.0-1.0)
        FETCH_TIMEOUT_SECONDS: HTTP timeout for downloads
        USER_AGENT: User-Agent header sent when downloading
        LOG_LEVEL: Logging level
        LOG_FILE: Optional JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DOWNLOAD_DIR: Path = Field(
        default=Path(".cache/downloads"), description="Download directory"
    )
    REPOSITORY_ROOT: Path | None = Field(
        default=None, description="Root of a repository-layout artifact cache"
    )

    TARGET_FREE_SPACE_RATIO: float = Field(
        default=0.25,
        ge=0.0,
        le=1.0,
        description="Target free disk space ratio before evicting",
    )

    FETCH_TIMEOUT_SECONDS: float = Field(
        default=30.0, gt=0.0, description="HTTP timeout for downloads"
    )
    USER_AGENT: str = Field(
        default=f"artifact-cache/{__version__}",
        description="User-Agent header for downloads",
    )

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON-lines log file")

    def ensure_directories(self) -> None:
        """Create the download directory if it doesn't exist."""
        self.DOWNLOAD_DIR.mkdir(parents=True, exist_ok=True)

    def display(self) -> dict[str, str | float | None]:
        """Return settings as a flat dict for display."""
        return {
            "DOWNLOAD_DIR": str(self.DOWNLOAD_DIR),
            "REPOSITORY_ROOT": str(self.REPOSITORY_ROOT) if self.REPOSITORY_ROOT else None,
            "TARGET_FREE_SPACE_RATIO": self.TARGET_FREE_SPACE_RATIO,
            "FETCH_TIMEOUT_SECONDS": self.FETCH_TIMEOUT_SECONDS,
            "USER_AGENT": self.USER_AGENT,
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
