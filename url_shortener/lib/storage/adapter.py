"""Typed JSON access over a key-value store."""

import hashlib
import json
import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError

from ..errors import SerializationError
from .base import KeyValueStore

M = TypeVar("M", bound=BaseModel)

ErrorListener = Callable[[str, SerializationError], None]


class StoreAdapter:
    """JSON serialization layer between the components and a KeyValueStore.

    Store failures (StorageError) propagate to the caller. Documents that
    fail to parse are reported to the registered error listeners and read as
    empty collections so that one corrupt key cannot block the application.
    A corrupt document is reported once; it is reported again only after the
    key has been written or its stored value has changed.
    """

    def __init__(self, store: KeyValueStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)
        self._listeners: List[ErrorListener] = []
        self._held = threading.local()
        self._reported: Dict[str, str] = {}
        self._reported_lock = threading.Lock()

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._listeners.append(listener)

    def remove_error_listener(self, listener: ErrorListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @contextmanager
    def locked(self, key: str) -> Iterator[None]:
        """Hold the store lock for key around a read-modify-write.

        Reentrant within a thread: nested blocks on the same key reuse the
        lock already held.

        Raises:
            StorageError: If the lock cannot be acquired
        """
        depth = self._held.__dict__.setdefault("depth", {})
        if depth.get(key):
            depth[key] += 1
            try:
                yield
            finally:
                depth[key] -= 1
        else:
            with self.store.lock(key):
                depth[key] = 1
                try:
                    yield
                finally:
                    depth[key] = 0

    def get(self, key: str, default: Any = None) -> Any:
        """Read and decode a JSON document.

        Raises:
            SerializationError: If the stored value is not valid JSON
        """
        return self._decode(key, self.store.get(key), default)

    def set(self, key: str, value: Any) -> None:
        """Encode value as JSON and write it.

        Raises:
            SerializationError: If value cannot be encoded
        """
        try:
            raw = json.dumps(value, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Unable to encode value for '{key}': {e}") from e
        self.store.set(key, raw)
        self._clear_report(key)

    def remove(self, key: str) -> None:
        self.store.remove(key)
        self._clear_report(key)

    def load_list(self, key: str, model: Type[M]) -> List[M]:
        """Load a JSON array of models.

        Raises:
            SerializationError: If the document or any element is malformed
        """
        return self._parse_list(key, self.store.get(key), model)

    def load_map(self, key: str, model: Type[M]) -> Dict[str, M]:
        """Load a JSON object mapping ids to models.

        Raises:
            SerializationError: If the document or any value is malformed
        """
        return self._parse_map(key, self.store.get(key), model)

    def read_list(self, key: str, model: Type[M]) -> List[M]:
        """Like load_list, but a corrupt document reads as an empty list."""
        raw = self.store.get(key)
        try:
            return self._parse_list(key, raw, model)
        except SerializationError as e:
            self.report(key, e, raw)
            return []

    def read_map(self, key: str, model: Type[M]) -> Dict[str, M]:
        """Like load_map, but a corrupt document reads as an empty mapping."""
        raw = self.store.get(key)
        try:
            return self._parse_map(key, raw, model)
        except SerializationError as e:
            self.report(key, e, raw)
            return {}

    def save_list(self, key: str, items: List[BaseModel], exclude_none: bool = True) -> None:
        self.set(key, [self._dump(key, item, exclude_none) for item in items])

    def save_map(self, key: str, items: Dict[str, BaseModel]) -> None:
        self.set(key, {k: self._dump(key, v, True) for k, v in items.items()})

    def report(self, key: str, error: SerializationError, raw: Optional[str] = None) -> None:
        """Log a corrupt document and notify listeners.

        Args:
            key: Storage key of the document
            error: Why it could not be parsed
            raw: The stored value; a value already reported for key is skipped
        """
        if raw is not None:
            fingerprint = hashlib.sha256(raw.encode("utf-8")).hexdigest()
            with self._reported_lock:
                if self._reported.get(key) == fingerprint:
                    self.logger.debug(f"Corrupt collection '{key}' already reported")
                    return
                self._reported[key] = fingerprint

        self.logger.error(f"Corrupt collection '{key}' treated as empty: {error}")
        for listener in list(self._listeners):
            listener(key, error)

    def _clear_report(self, key: str) -> None:
        with self._reported_lock:
            self._reported.pop(key, None)

    @staticmethod
    def _decode(key: str, raw: Optional[str], default: Any) -> Any:
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            raise SerializationError(f"Stored value for '{key}' is not valid JSON: {e}") from e

    def _parse_list(self, key: str, raw: Optional[str], model: Type[M]) -> List[M]:
        data = self._decode(key, raw, [])
        if not isinstance(data, list):
            raise SerializationError(f"Stored value for '{key}' is not a list")
        try:
            return [model.model_validate(item) for item in data]
        except ValidationError as e:
            raise SerializationError(f"Stored value for '{key}' has invalid entries: {e}") from e

    def _parse_map(self, key: str, raw: Optional[str], model: Type[M]) -> Dict[str, M]:
        data = self._decode(key, raw, {})
        if not isinstance(data, dict):
            raise SerializationError(f"Stored value for '{key}' is not an object")
        try:
            return {k: model.model_validate(v) for k, v in data.items()}
        except ValidationError as e:
            raise SerializationError(f"Stored value for '{key}' has invalid entries: {e}") from e

    @staticmethod
    def _dump(key: str, item: BaseModel, exclude_none: bool) -> Dict[str, Any]:
        try:
            return item.model_dump(mode="json", exclude_none=exclude_none)
        except PydanticSerializationError as e:
            raise SerializationError(f"Unable to encode value for '{key}': {e}") from e
