"""Clock abstractions used by the lifecycle engine.

Every time-dependent decision (start instants, elapsed seconds, deadlines)
reads "now" from an injected clock so the engine can be driven
deterministically in tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol implemented by clock providers."""

    def now_utc(self) -> datetime:
        """Return the current time as an aware UTC datetime."""


class MasterClock:
    """Wall clock providing timezone-aware timestamps."""

    def now_utc(self) -> datetime:
        """Return current UTC time as an aware datetime."""
        return datetime.now(timezone.utc)


class SteppedClock:
    """Deterministic clock used for tests and simulations.

    Time advances only when :meth:`advance` or :meth:`set` is called.
    """

    def __init__(self, start: datetime | None = None) -> None:
        start = start or datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        ensure_aware(start)
        self._current = start.astimezone(timezone.utc)
        self._lock = Lock()

    def now_utc(self) -> datetime:
        with self._lock:
            return self._current

    def advance(self, seconds: float) -> datetime:
        """Advance the clock by ``seconds`` (must be non-negative)."""
        if seconds < 0.0:
            raise ValueError("seconds must be non-negative")
        with self._lock:
            self._current += timedelta(seconds=seconds)
            return self._current

    def set(self, when: datetime) -> datetime:
        """Jump to ``when``; the clock never moves backwards."""
        ensure_aware(when)
        when = when.astimezone(timezone.utc)
        with self._lock:
            if when < self._current:
                raise ValueError("clock cannot move backwards")
            self._current = when
            return self._current


def ensure_aware(dt: datetime) -> None:
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        raise ValueError("Datetime must be timezone-aware")
