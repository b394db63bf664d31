"""
Configuration and settings for the cafe backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Table store (Postgres expected, any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None, env="DATABASE_URL")

    # S3-compatible object storage
    storage_endpoint: Optional[str] = Field(default=None, env="STORAGE_ENDPOINT")
    storage_region: Optional[str] = Field(default=None, env="STORAGE_REGION")
    storage_bucket: Optional[str] = Field(default=None, env="STORAGE_BUCKET")
    storage_public_base_url: Optional[str] = Field(
        default=None, env="STORAGE_PUBLIC_BASE_URL"
    )
    aws_access_key_id: Optional[str] = Field(
        default=None, env="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, env="AWS_SECRET_ACCESS_KEY"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "CAFE_USE_IN_MEMORY_BACKENDS", "use_in_memory_backends"
        ),
    )

    # Admin session gate
    admin_password: str = Field(default="coffee-admin", env="ADMIN_PASSWORD")
    session_secret: str = Field(
        default="change-me-in-production", env="SESSION_SECRET"
    )
    session_ttl_minutes: int = Field(default=12 * 60, env="SESSION_TTL_MINUTES")

    # Admin views
    visitor_log_limit: int = Field(default=50, env="VISITOR_LOG_LIMIT")

    # Which event config row the public page treats as authoritative.
    event_config_read_mode: Literal["active", "latest"] = Field(
        default="active", env="EVENT_CONFIG_READ_MODE"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
