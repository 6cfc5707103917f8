"""Abstract base class for key-value store backends."""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, Optional


class KeyValueStore(ABC):
    """String-keyed persistent store holding string values.

    Implementations raise StorageError (STORAGE_FULL or STORAGE_UNAVAILABLE)
    when an operation cannot be carried out.
    """

    def __init__(self):
        self._key_locks: Dict[str, threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get the raw value stored under key.

        Args:
            key: Storage key

        Returns:
            Stored string or None if the key is absent
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a raw value under key, replacing any previous value.

        Args:
            key: Storage key
            value: String to store
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove key. Removing an absent key is not an error.

        Args:
            key: Storage key
        """
        pass

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        """Hold the exclusive lock guarding a read-modify-write of key.

        Serializes callers within this process. Backends visible to other
        processes extend it with a lock those processes honour too. Not
        reentrant.

        Args:
            key: Storage key
        """
        with self._key_locks_guard:
            key_lock = self._key_locks.setdefault(key, threading.Lock())
        with key_lock:
            yield

    def health_check(self) -> bool:
        """Check if the store is reachable.

        Returns:
            True if healthy, False otherwise
        """
        return True

    def close(self) -> None:
        """Release resources held by the store."""
        pass
