"""File system store backend."""

import errno
import logging
import os
import re
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from filelock import FileLock, Timeout

from ..errors import ErrorKind, StorageError
from .base import KeyValueStore

_KEY_RE = re.compile(r'[A-Za-z0-9_.-]+')
_FULL_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class JsonFileStore(KeyValueStore):
    """Store each key as ``<data_dir>/<key>.json``.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash never leaves a half-written document behind.
    Read-modify-write cycles are serialized across processes through a
    ``.<key>.lock`` file next to the document.
    """

    SUFFIX = ".json"
    LOCK_SUFFIX = ".lock"

    def __init__(
        self,
        data_dir: Union[str, Path],
        lock_timeout: float = 10.0,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize file store.

        Args:
            data_dir: Directory holding one file per key (created if missing)
            lock_timeout: Seconds to wait for another process's lock on a key
            logger: Optional logger instance
        """
        super().__init__()
        self.data_dir = Path(data_dir).expanduser()
        self.lock_timeout = lock_timeout
        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            self.logger.error(f"Error reading {path}: {e}")
            raise StorageError(f"Unable to read '{key}': {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        with self._lock:
            tmp_name = None
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=self.data_dir,
                    prefix=f".{key}.",
                    suffix=".tmp",
                    delete=False,
                ) as tmp:
                    tmp_name = tmp.name
                    tmp.write(value)
                    tmp.flush()
                    os.fsync(tmp.fileno())
                os.replace(tmp_name, path)
                tmp_name = None
            except OSError as e:
                self.logger.error(f"Error writing {path}: {e}")
                kind = ErrorKind.STORAGE_FULL if e.errno in _FULL_ERRNOS else ErrorKind.STORAGE_UNAVAILABLE
                raise StorageError(f"Unable to write '{key}': {e}", kind) from e
            finally:
                if tmp_name is not None:
                    Path(tmp_name).unlink(missing_ok=True)

    def remove(self, key: str) -> None:
        path = self._path(key)
        with self._lock:
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                self.logger.error(f"Error removing {path}: {e}")
                raise StorageError(f"Unable to remove '{key}': {e}") from e

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        lock_path = self.data_dir / f".{key}{self.LOCK_SUFFIX}"
        self._path(key)  # rejects invalid keys
        with super().lock(key):
            file_lock = FileLock(str(lock_path), timeout=self.lock_timeout)
            try:
                self.data_dir.mkdir(parents=True, exist_ok=True)
                file_lock.acquire()
            except Timeout as e:
                self.logger.error(f"Timed out waiting for {lock_path}")
                raise StorageError(f"Timed out waiting for the lock on '{key}'") from e
            except OSError as e:
                self.logger.error(f"Error locking {lock_path}: {e}")
                raise StorageError(f"Unable to lock '{key}': {e}") from e
            try:
                yield
            finally:
                file_lock.release()

    def health_check(self) -> bool:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.logger.error(f"Data directory {self.data_dir} unavailable: {e}")
            return False
        return os.access(self.data_dir, os.R_OK | os.W_OK)

    def _path(self, key: str) -> Path:
        if not _KEY_RE.fullmatch(key) or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}{self.SUFFIX}"
