"""
Shared configuration management for Tiny Content Cache.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="TINY_CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Store
    redis_url: str = Field(default="redis://localhost:6379/0")
    key_prefix: str = Field(default="tiny_cache")
    ttl_seconds: int = Field(default=86400, gt=0)
    store_failure_threshold: int = Field(default=5, ge=1)
    store_recovery_timeout: float = Field(default=30.0, gt=0)

    # Upstream content service
    content_service_url: str = Field(default="http://localhost:8080")
    content_service_timeout: float = Field(default=10.0, gt=0)

    # Request classification
    session_cookie_name: Optional[str] = Field(default="session")

    # Lifecycle events
    kafka_bootstrap: str = Field(default="localhost:9092")
    lifecycle_topic: str = Field(default="content.lifecycle")
    kafka_group_id: str = Field(default="tiny-content-cache")
    enable_lifecycle_consumer: bool = Field(default=False)


class ContentCacheConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "content_cache"
    port: int = 8020
    host: str = "0.0.0.0"


def get_config(**overrides) -> ContentCacheConfig:
    """Get configuration for the content cache service."""
    return ContentCacheConfig(**overrides)
