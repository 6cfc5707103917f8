"""Bounded activity log."""

import json
import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import TypeAdapter

from .clock import Clock, SystemClock
from .errors import SerializationError, StorageError
from .models import LogEntry, LogLevel
from .storage import LOGS_KEY, StoreAdapter

DEFAULT_MAX_ENTRIES = 1000

Subscriber = Callable[[LogEntry], None]

_entries_adapter = TypeAdapter(List[LogEntry])


class ActivityLog:
    """Append-only log of user visible actions, newest entry first.

    The log never holds more than max_entries entries; each append evicts
    the oldest entries beyond that cap in the same write.
    """

    def __init__(
        self,
        adapter: StoreAdapter,
        clock: Optional[Clock] = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        logger: Optional[logging.Logger] = None,
        key: str = LOGS_KEY,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.adapter = adapter
        self.clock = clock or SystemClock()
        self.max_entries = max_entries
        self.logger = logger or logging.getLogger(__name__)
        self.key = key
        self._subscribers: List[Subscriber] = []

        adapter.add_error_listener(self._on_corrupt_collection)

    def append(
        self,
        action: str,
        details: Optional[Dict[str, Any]] = None,
        level: Union[LogLevel, str] = LogLevel.INFO,
    ) -> LogEntry:
        """Add an entry and evict the oldest entries beyond the cap.

        Args:
            action: Short tag for what happened
            details: Free-form context
            level: info, warning or error

        Returns:
            The new entry

        Raises:
            StorageError: If the store rejects the write
        """
        with self.adapter.locked(self.key):
            entries = self._load_for_write()
            entry = self._new_entry(action, details or {}, LogLevel(level))
            entries.insert(0, entry)
            del entries[self.max_entries:]
            self.adapter.save_list(self.key, entries, exclude_none=False)

        self._notify(entry)
        return entry

    def query(
        self,
        level: Optional[Union[LogLevel, str]] = None,
        search_text: Optional[str] = None,
    ) -> List[LogEntry]:
        """Return matching entries, newest first.

        Args:
            level: Only entries with this level
            search_text: Case-insensitive substring of action or details
        """
        entries = self.entries()
        if level is not None:
            level = LogLevel(level)
            entries = [e for e in entries if e.level == level]
        if search_text:
            needle = search_text.lower()
            entries = [
                e for e in entries
                if needle in e.action.lower()
                or needle in json.dumps(e.details, default=str).lower()
            ]
        return entries

    def entries(self) -> List[LogEntry]:
        return self.adapter.read_list(self.key, LogEntry)

    def export_as_json(self) -> str:
        """Serialize the whole log, newest first, as a JSON array."""
        return _entries_adapter.dump_json(self.entries(), indent=2).decode("utf-8")

    @staticmethod
    def parse_export(text: str) -> List[LogEntry]:
        """Parse the output of export_as_json back into entries."""
        return _entries_adapter.validate_json(text)

    def clear(self) -> None:
        with self.adapter.locked(self.key):
            self.adapter.remove(self.key)
        self.logger.info("Activity log cleared")

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a callback run after every append.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def _load_for_write(self) -> List[LogEntry]:
        try:
            return self.adapter.load_list(self.key, LogEntry)
        except SerializationError as e:
            # Start over, keeping a record of why the history vanished
            self.logger.error(f"Activity log unreadable, starting a new one: {e}")
            return [self._new_entry(
                "storage_corrupt",
                {"key": self.key, "error": e.message},
                LogLevel.ERROR,
            )]

    def _new_entry(self, action: str, details: Dict[str, Any], level: LogLevel) -> LogEntry:
        return LogEntry(
            id=uuid.uuid4().hex,
            timestamp=self.clock.now_ms(),
            action=action,
            details=details,
            level=level,
        )

    def _notify(self, entry: LogEntry) -> None:
        for subscriber in list(self._subscribers):
            try:
                subscriber(entry)
            except Exception as e:
                self.logger.error(f"Activity log subscriber failed: {e}")

    def _on_corrupt_collection(self, key: str, error: SerializationError) -> None:
        if key == self.key:
            # Reported again on the next append
            return
        try:
            self.append("storage_corrupt", {"key": key, "error": error.message}, LogLevel.ERROR)
        except StorageError as e:
            self.logger.error(f"Unable to record corrupt collection '{key}': {e}")
