"""
Application settings for the occurrence engine.

Centralized settings loaded from environment variables.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings loaded from environment variables.

    Environment Variables:
        OCCURRENCES_INSTANCE_LIMIT: Max instances materialized per event (default: 10)
        OCCURRENCES_EXPANSION_SCAN_LIMIT: Candidate occurrences examined per event before expansion stops (default: 1000)
        OCCURRENCES_REFRESH_PAGE_SIZE: Calendars/events loaded per page by a full refresh (default: 100)
        OCCURRENCES_REFRESH_WORKERS: Concurrent event rebuilds during a full refresh (default: 4)
        OCCURRENCES_REMOVED_EVENT_MEMORY: Deleted event ids remembered to ignore late updates (default: 10000)
        OCCURRENCES_LOG_LEVEL: Root log level (default: INFO)
    """

    model_config = SettingsConfigDict(env_prefix="OCCURRENCES_")

    instance_limit: int = Field(default=10, ge=1)
    expansion_scan_limit: int = Field(default=1000, ge=1)
    refresh_page_size: int = Field(default=100, ge=1)
    refresh_workers: int = Field(default=4, ge=1)
    removed_event_memory: int = Field(default=10000, ge=1)
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
