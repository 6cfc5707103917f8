"""In-memory store backend."""

import threading
from typing import Dict, Optional

from ..errors import ErrorKind, StorageError
from .base import KeyValueStore


class MemoryStore(KeyValueStore):
    """Dictionary backed store with an optional size quota.

    The quota counts UTF-8 bytes of keys and values, like a browser's
    local storage budget.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        super().__init__()
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            if self.quota_bytes is not None:
                used = self._size_without(key) + _entry_size(key, value)
                if used > self.quota_bytes:
                    raise StorageError(
                        f"Storage quota exceeded writing '{key}' "
                        f"({used} > {self.quota_bytes} bytes)",
                        ErrorKind.STORAGE_FULL,
                    )
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def used_bytes(self) -> int:
        with self._lock:
            return self._size_without(None)

    def _size_without(self, skip_key: Optional[str]) -> int:
        return sum(_entry_size(k, v) for k, v in self._data.items() if k != skip_key)


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))
