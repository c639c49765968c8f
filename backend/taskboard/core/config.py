"""Application configuration using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from `TASKBOARD_*` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TASKBOARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Taskboard"
    environment: Literal["development", "staging", "production"] = "development"
    api_prefix: str = ""

    # Logging
    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["text", "json"] = "text"
    request_log_slow_ms: int = Field(default=1000, ge=0)
    request_log_include_health: bool = False

    # Data source
    data_source: Literal["memory", "local"] = "memory"
    data_file: Path = Path("data/tasks.json")
    autosave: bool = True
    seed_demo_data: bool = True

    # Sorting
    sort_locale_fold: bool = True


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()


settings = get_settings()
