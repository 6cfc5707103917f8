"""Configuration management for URL shortener."""

from typing import Literal, Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Config(BaseSettings):
    """Application configuration."""

    # Storage settings
    store_backend: Literal["memory", "file", "redis"] = Field(
        default="file",
        description="Key-value store backend (memory, file, redis)"
    )

    data_dir: str = Field(
        default="~/.url_shortener",
        description="Directory for the file store backend"
    )

    redis_url: Optional[str] = Field(
        default=None,
        description="Redis connection URL for the redis store backend"
    )

    redis_namespace: str = Field(
        default="url:shortener",
        description="Prefix for keys written by the redis store backend"
    )

    storage_quota_bytes: Optional[int] = Field(
        default=None,
        ge=1,
        description="Size budget for the memory store backend (unlimited if not set)"
    )

    lock_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for another process holding a collection lock"
    )

    # URL shortener settings
    base_url: str = Field(
        default="http://localhost:9200",
        description="Base URL for displaying short URLs"
    )

    path_prefix: str = Field(
        default="",
        description="Path prefix for short URLs (e.g., '/s' for /s/abc123)"
    )

    short_code_length: int = Field(
        default=6,
        ge=3,
        le=20,
        description="Default length for generated short codes"
    )

    max_generation_retries: int = Field(
        default=10,
        ge=1,
        description="Random draws allowed before short code generation gives up"
    )

    default_ttl_minutes: int = Field(
        default=30,
        gt=0,
        description="Lifetime of a short URL when none is given"
    )

    auto_purge: bool = Field(
        default=False,
        description="Delete expired records before each create"
    )

    # Activity log settings
    max_log_entries: int = Field(
        default=1000,
        ge=1,
        description="Activity log capacity; oldest entries are evicted first"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    log_file: Optional[str] = Field(
        default=None,
        description="Log file path (logs to stderr only if not specified)"
    )

    log_json: bool = Field(
        default=False,
        description="Use JSON format for logs"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",  # Ignore extra environment variables
    }


def load_config(**overrides) -> Config:
    """Load configuration from environment."""
    return Config(**overrides)
