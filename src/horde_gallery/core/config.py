"""Application configuration using pydantic-settings."""

from __future__ import annotations

from typing import Literal

from pydantic import computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables with
    the HORDE_GALLERY_ prefix.

    Example:
        export HORDE_GALLERY_LOG_LEVEL=DEBUG
        export HORDE_GALLERY_API_BASE_URL=http://gallery.local:8005/api
    """

    model_config = SettingsConfigDict(
        env_prefix="HORDE_GALLERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["simple", "detailed", "json"] = "simple"
    # Separate level for the per-tick polling loggers (None: follow log_level)
    poll_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None

    # Gallery server
    api_base_url: str = "http://localhost:8005/api"
    api_timeout_seconds: float = 30.0

    # Outbound throttle (one call per interval, process-wide)
    min_api_interval_seconds: float = 1.0

    # Image polling while the queue is busy
    image_poll_interval_seconds: float = 3.0
    final_check_delay_seconds: float = 3.0
    image_page_size: int = 20

    # Request list / queue status polling
    requests_poll_interval_seconds: float = 2.0
    requests_page_size: int = 100

    # Failed requests are pruned without a confirmation step
    auto_prune_failed: bool = True

    @field_validator(
        "api_timeout_seconds",
        "min_api_interval_seconds",
        "image_poll_interval_seconds",
        "final_check_delay_seconds",
        "requests_poll_interval_seconds",
    )
    @classmethod
    def ensure_positive_interval(cls, v: float) -> float:
        """Reject zero or negative durations."""
        if v <= 0:
            raise ValueError("interval must be positive")
        return v

    @field_validator("image_page_size", "requests_page_size")
    @classmethod
    def ensure_positive_page_size(cls, v: int) -> int:
        """Reject empty pages."""
        if v < 1:
            raise ValueError("page size must be at least 1")
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def api_root(self) -> str:
        """Base URL without a trailing slash."""
        return self.api_base_url.rstrip("/")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the current settings instance."""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment (useful for testing)."""
    global settings
    settings = Settings()
    return settings
