"""Clock sources for timestamps and expiry checks."""

import time
from abc import ABC, abstractmethod
from typing import Optional

MS_PER_MINUTE = 60_000


class Clock(ABC):
    """Source of wall-clock time in epoch milliseconds."""

    @abstractmethod
    def now_ms(self) -> int:
        """Return current time in epoch milliseconds."""
        pass


class SystemClock(Clock):
    """Clock backed by the system time."""

    def now_ms(self) -> int:
        return time.time_ns() // 1_000_000


class ManualClock(Clock):
    """Clock that only moves when told to. Used for deterministic tests."""

    def __init__(self, start_ms: Optional[int] = None):
        self._now = start_ms if start_ms is not None else 1_700_000_000_000

    def now_ms(self) -> int:
        return self._now

    def set(self, now_ms: int) -> None:
        self._now = now_ms

    def advance(self, ms: int = 0, minutes: int = 0) -> int:
        """Move the clock forward.

        Args:
            ms: Milliseconds to advance
            minutes: Minutes to advance

        Returns:
            The new current time
        """
        self._now += ms + minutes * MS_PER_MINUTE
        return self._now
