"""
Configuration management using pydantic-settings.
Loads configuration from environment variables and .env file.
"""

from functools import lru_cache
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # PDF Template Configuration
    PDF_TEMPLATE_BASE_URL: str = "https://cdn.kung-gestion.com"
    PDF_FETCH_TIMEOUT: float | None = None  # None keeps the HTTP client's default timeout

    # Order Form Export
    FILLED_FILENAME_PREFIX: str = "filled-"
    FLATTEN_BY_DEFAULT: bool = False

    # Value Formatting
    DATE_FORMAT: str = "%d.%m.%Y"
    POSTAL_COUNTRY_PREFIX: str = "CH"

    # Preview Rendering
    PREVIEW_MIN_SCALE: float = 0.5
    PREVIEW_MAX_SCALE: float = 3.0
    PREVIEW_SCALE_STEP: float = 0.2

    # Application Configuration
    DEBUG: bool = False
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @property
    def template_base_url(self) -> str:
        """Base URL without a trailing slash."""
        return self.PDF_TEMPLATE_BASE_URL.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Global settings instance
settings = get_settings()
