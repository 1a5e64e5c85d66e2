"""
Domain layer - stream records, stop schedules and their enums.

This layer contains the value types the lifecycle engine works on,
independent of persistence, broadcasting or the operator surfaces.
"""

from .schedule import AbsoluteConfig, DurationConfig, ScheduleConfig
from .stream import StreamRecord
from .types import ScheduleType, StreamStatus

__all__ = [
    "AbsoluteConfig",
    "DurationConfig",
    "ScheduleConfig",
    "ScheduleType",
    "StreamRecord",
    "StreamStatus",
]
