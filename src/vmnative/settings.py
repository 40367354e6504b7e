"""
Application settings using Pydantic.

Provides environment-based configuration loading with VMNATIVE_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="VMNATIVE_",
    )

    # Source
    src_addr: str = "http://localhost:8428"
    src_user: str | None = None
    src_password: str | None = None
    src_bearer_token: str | None = None

    # Destination
    dst_addr: str = "http://localhost:8428"
    dst_user: str | None = None
    dst_password: str | None = None
    dst_bearer_token: str | None = None
    dst_extra_labels: list[str] = []

    # HTTP client settings (seconds; native exports can be long-lived)
    http_timeout: float = 300.0

    # Concurrency
    explore_concurrency: int | None = None
    migrate_concurrency: int = 2

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
