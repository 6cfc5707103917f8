"""Redis store backend."""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

try:
    import redis
    REDIS_AVAILABLE = True
except ImportError:
    REDIS_AVAILABLE = False

from ..errors import ErrorKind, StorageError
from .base import KeyValueStore


class RedisStore(KeyValueStore):
    """Store collections as plain string values in Redis.

    Key locks are redis-py locks named ``<namespace>:<key>:lock``, so every
    process pointed at the same server serializes on them.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        namespace: str = "url:shortener",
        client=None,
        lock_timeout: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Redis store.

        Args:
            redis_url: Redis connection URL (e.g., redis://localhost:6379/0)
            namespace: Prefix for every key written
            client: Optional pre-built client (anything with get/set/delete/ping/lock)
            lock_timeout: Seconds a key lock is held at most, and waited for
            logger: Optional logger instance
        """
        super().__init__()
        self.redis_url = redis_url
        self.namespace = namespace
        self.lock_timeout = lock_timeout
        self.logger = logger or logging.getLogger(__name__)

        if client is not None:
            self.client = client
        elif not REDIS_AVAILABLE:
            raise StorageError("Redis backend requested but the redis package is not installed")
        elif not redis_url:
            raise StorageError("Redis backend requested without a redis_url")
        else:
            self.client = redis.Redis.from_url(
                redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            self.logger.info(f"Redis store configured at {redis_url}")

    def get_key(self, key: str) -> str:
        """Generate namespaced Redis key.

        Args:
            key: Collection key

        Returns:
            Redis key
        """
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(self.get_key(key))
        except Exception as e:
            self.logger.error(f"Redis get error: {e}")
            raise StorageError(f"Unable to read '{key}': {e}") from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(self.get_key(key), value)
        except Exception as e:
            self.logger.error(f"Redis set error: {e}")
            kind = ErrorKind.STORAGE_FULL if "OOM" in str(e) else ErrorKind.STORAGE_UNAVAILABLE
            raise StorageError(f"Unable to write '{key}': {e}", kind) from e

    def remove(self, key: str) -> None:
        try:
            self.client.delete(self.get_key(key))
        except Exception as e:
            self.logger.error(f"Redis delete error: {e}")
            raise StorageError(f"Unable to remove '{key}': {e}") from e

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        name = f"{self.get_key(key)}:lock"
        with super().lock(key):
            try:
                key_lock = self.client.lock(
                    name,
                    timeout=self.lock_timeout,
                    blocking_timeout=self.lock_timeout,
                )
                acquired = key_lock.acquire()
            except Exception as e:
                self.logger.error(f"Redis lock error: {e}")
                raise StorageError(f"Unable to lock '{key}': {e}") from e
            if not acquired:
                raise StorageError(f"Timed out waiting for the lock on '{key}'")
            try:
                yield
            finally:
                try:
                    key_lock.release()
                except Exception as e:
                    # Lease ran out; another client may already hold the key
                    self.logger.warning(f"Redis lock release failed for '{key}': {e}")

    def health_check(self) -> bool:
        try:
            return bool(self.client.ping())
        except Exception as e:
            self.logger.error(f"Redis ping failed: {e}")
            return False

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if close:
            close()
            self.logger.info("Redis connection closed")
