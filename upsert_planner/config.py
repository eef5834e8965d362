"""
Runtime settings for the upsert planner.

Uses Pydantic Settings to load environment variables for logging and batch
defaults. Planner configuration (key/value/timestamp fields) is not a setting;
it is supplied per planner and validated by `upsert_planner.planner_config`.
"""
from __future__ import annotations

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Planning defaults
    default_time_model: str = Field("direct", alias="UPSERT_DEFAULT_TIME_MODEL")
    batch_processes: int = Field(1, ge=1, alias="UPSERT_BATCH_PROCESSES")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
