"""
Configuration and settings for the novena service.
"""

from __future__ import annotations

from datetime import time
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service and the scheduler."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)

    # Content
    data_dir: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("NOVENA_DATA_DIR", "data_dir")
    )
    allow_unknown_blocks: bool = Field(default=False)

    # Firebase service account JSON (a single env var holding the whole blob)
    firebase_service_account: Optional[str] = Field(default=None)
    users_collection: str = Field(default="users")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "NOVENA_USE_IN_MEMORY_BACKENDS", "use_in_memory_backends"
        ),
    )

    # Reminder scheduler
    scheduler_enabled: bool = Field(default=False)
    reminder_timezone: str = Field(default="America/Sao_Paulo")
    morning_time: str = Field(default="10:00")
    evening_time: str = Field(default="20:30")

    # Push delivery
    delivery_max_attempts: int = Field(default=3, ge=1)
    delivery_retry_base_seconds: float = Field(default=1.0, ge=0)
    delivery_timeout_seconds: float = Field(default=10.0, gt=0)
    delivery_workers: int = Field(default=4, ge=1)

    @field_validator("morning_time", "evening_time")
    @classmethod
    def _check_clock(cls, value: str) -> str:
        time.fromisoformat(value)
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
