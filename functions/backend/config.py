"""
Configuration and settings for the expense service and feed client.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database (Postgres expected; any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None, env="DATABASE_URL")

    # Sessions (Redis)
    redis_url: Optional[str] = Field(default=None, env="REDIS_URL")
    session_key_prefix: str = Field(
        default="expenses:session:", env="SESSION_KEY_PREFIX"
    )
    session_ttl_seconds: int = Field(
        default=7 * 24 * 3600, env="SESSION_TTL_SECONDS"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, env="USE_IN_MEMORY_BACKENDS"
    )
    log_level: str = Field(default="INFO", env="LOG_LEVEL")

    # Feed client
    api_base_url: str = Field(
        default="http://localhost:8000/api", env="API_BASE_URL"
    )
    request_timeout_seconds: float = Field(
        default=10.0, env="REQUEST_TIMEOUT_SECONDS"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
