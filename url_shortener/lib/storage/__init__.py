"""Storage layer for URL shortener."""

import logging
from typing import Optional

from .adapter import StoreAdapter
from .base import KeyValueStore
from .json_file import JsonFileStore
from .memory import MemoryStore
from .redis_store import RedisStore

URLS_KEY = "url_records"
ANALYTICS_KEY = "url_analytics"
LOGS_KEY = "activity_logs"


def create_store(config, logger: Optional[logging.Logger] = None) -> KeyValueStore:
    """Build the store backend selected by config.store_backend.

    Args:
        config: Application configuration
        logger: Optional logger instance

    Returns:
        KeyValueStore instance
    """
    backend = config.store_backend.lower()
    if backend == "memory":
        return MemoryStore(quota_bytes=config.storage_quota_bytes)
    if backend == "file":
        return JsonFileStore(config.data_dir, lock_timeout=config.lock_timeout_seconds, logger=logger)
    if backend == "redis":
        return RedisStore(
            config.redis_url,
            namespace=config.redis_namespace,
            lock_timeout=config.lock_timeout_seconds,
            logger=logger,
        )
    raise ValueError(f"Unknown store backend: {config.store_backend}")


__all__ = [
    "KeyValueStore",
    "StoreAdapter",
    "MemoryStore",
    "JsonFileStore",
    "RedisStore",
    "create_store",
    "URLS_KEY",
    "ANALYTICS_KEY",
    "LOGS_KEY",
]
