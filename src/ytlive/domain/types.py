"""
Shared types and enums for ytlive.

This module contains common enums used across the domain, runtime, API,
CLI, and persistence layers. Values are the stable wire strings.
"""

from __future__ import annotations

from enum import Enum


class StreamStatus(str, Enum):
    """Lifecycle status of a stream record."""

    IDLE = "idle"  # draft, not started
    SCHEDULED = "scheduled"  # reserved for a future-start capability
    LIVE = "live"
    STOPPING = "stopping"  # stop issued, not yet acknowledged
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_active(self) -> bool:
        """True while a broadcast may still be running."""
        return self in (StreamStatus.LIVE, StreamStatus.STOPPING)


class ScheduleType(str, Enum):
    """Kinds of stop schedule."""

    MANUAL = "manual"
    DURATION = "duration"
    ABSOLUTE = "absolute"
