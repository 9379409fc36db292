"""
Injectable clocks.

Every timestamp the engine records comes from a Clock, captured once per
appended event and passed to the reducer as the event's ``created_at``.
Folding a log therefore reproduces timestamps exactly, and replay runs use
a SteppingClock so independent runs agree on wall-clock fields.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Source of the current time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(tz=UTC)


class SteppingClock:
    """Deterministic clock: returns ``start``, then advances by ``step`` on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(milliseconds=1)) -> None:
        if start.tzinfo is None:
            raise ValueError("SteppingClock start must be timezone-aware")
        self._current = start
        self._step = step
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            value = self._current
            self._current = value + self._step
            return value
