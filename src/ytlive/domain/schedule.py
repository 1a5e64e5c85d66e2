"""
Stop schedule configuration.

A schedule is a tagged union: ``manual`` (operator stops explicitly),
``duration`` (stop after a wall-clock duration since start) or ``absolute``
(stop at a naive civil date-time interpreted in an IANA timezone).

Only structural checks live here. Resolving an absolute schedule to an
instant (timezone lookup, DST gaps) belongs to
:mod:`ytlive.runtime.schedule_evaluator`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..infra.exceptions import ValidationError
from .types import ScheduleType

# Natural field ranges, used for display normalization only.
MAX_HOURS = 99
SECONDS_PER_HOUR = 3600
SECONDS_PER_MINUTE = 60


def _as_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"duration {field_name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"duration {field_name} must be an integer")


@dataclass(frozen=True)
class DurationConfig:
    """Stop after ``hours:minutes:seconds`` of broadcasting.

    Fields are not range-checked; out-of-range input is folded into the
    total. A zero total is valid and means "stop immediately".
    """

    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    def total_seconds(self) -> int:
        return self.hours * SECONDS_PER_HOUR + self.minutes * SECONDS_PER_MINUTE + self.seconds

    def normalized(self) -> DurationConfig:
        """Return the same total expressed with minutes and seconds in 0..59."""
        total = self.total_seconds()
        hours, rest = divmod(total, SECONDS_PER_HOUR)
        minutes, seconds = divmod(rest, SECONDS_PER_MINUTE)
        return DurationConfig(hours=hours, minutes=minutes, seconds=seconds)

    @property
    def in_natural_range(self) -> bool:
        return 0 <= self.hours <= MAX_HOURS and 0 <= self.minutes <= 59 and 0 <= self.seconds <= 59

    def to_dict(self) -> dict[str, int]:
        return {"hours": self.hours, "minutes": self.minutes, "seconds": self.seconds}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DurationConfig:
        if not isinstance(data, dict):
            raise ValidationError("duration must be an object with hours, minutes and seconds")
        return cls(
            hours=_as_int(data.get("hours", 0), "hours"),
            minutes=_as_int(data.get("minutes", 0), "minutes"),
            seconds=_as_int(data.get("seconds", 0), "seconds"),
        )


@dataclass(frozen=True)
class AbsoluteConfig:
    """Stop at ``datetime`` (naive, ISO format) in the IANA zone ``timezone``."""

    datetime: str
    timezone: str

    def to_dict(self) -> dict[str, str]:
        return {"datetime": self.datetime, "timezone": self.timezone}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AbsoluteConfig:
        if not isinstance(data, dict):
            raise ValidationError("absolute must be an object with datetime and timezone")
        return cls(
            datetime=str(data.get("datetime") or "").strip(),
            timezone=str(data.get("timezone") or "").strip(),
        )


@dataclass(frozen=True)
class ScheduleConfig:
    """Stop policy attached to a stream record."""

    type: ScheduleType = ScheduleType.MANUAL
    duration: DurationConfig | None = None
    absolute: AbsoluteConfig | None = None

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def manual(cls) -> ScheduleConfig:
        return cls(type=ScheduleType.MANUAL)

    @classmethod
    def for_duration(cls, hours: int = 0, minutes: int = 0, seconds: int = 0) -> ScheduleConfig:
        return cls(
            type=ScheduleType.DURATION,
            duration=DurationConfig(hours=hours, minutes=minutes, seconds=seconds),
        )

    @classmethod
    def for_absolute(cls, datetime: str, timezone: str) -> ScheduleConfig:
        return cls(
            type=ScheduleType.ABSOLUTE,
            absolute=AbsoluteConfig(datetime=datetime, timezone=timezone),
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> ScheduleConfig:
        """Check the schedule is structurally complete for its type.

        Returns ``self`` so calls can be chained. Raises ValidationError.
        """
        if self.type == ScheduleType.DURATION:
            if self.duration is None:
                raise ValidationError("duration schedule requires hours, minutes and seconds")
            for field_name in ("hours", "minutes", "seconds"):
                value = getattr(self.duration, field_name)
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValidationError(f"duration {field_name} must be an integer")
            if self.duration.total_seconds() < 0:
                raise ValidationError("duration must not be negative")
        elif self.type == ScheduleType.ABSOLUTE:
            if self.absolute is None:
                raise ValidationError("absolute schedule requires datetime and timezone")
            if not self.absolute.datetime:
                raise ValidationError("absolute schedule requires a datetime")
            if not self.absolute.timezone:
                raise ValidationError("absolute schedule requires a timezone")
        return self

    # ------------------------------------------------------------------
    # Wire shape
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "duration": self.duration.to_dict() if self.duration is not None else None,
            "absolute": self.absolute.to_dict() if self.absolute is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ScheduleConfig:
        """Deserialize the ``{"type", "duration", "absolute"}`` wire shape.

        Only the payload matching ``type`` is kept; a stray payload for
        another type is ignored.
        """
        if data is None:
            return cls.manual()
        if not isinstance(data, dict):
            raise ValidationError("schedule must be an object")
        raw_type = data.get("type")
        try:
            schedule_type = ScheduleType(raw_type)
        except ValueError:
            raise ValidationError(
                f"unknown schedule type {raw_type!r} (expected manual, duration or absolute)"
            ) from None

        if schedule_type == ScheduleType.DURATION:
            payload = data.get("duration")
            duration = DurationConfig.from_dict(payload) if payload is not None else None
            return cls(type=schedule_type, duration=duration)
        if schedule_type == ScheduleType.ABSOLUTE:
            payload = data.get("absolute")
            absolute = AbsoluteConfig.from_dict(payload) if payload is not None else None
            return cls(type=schedule_type, absolute=absolute)
        return cls.manual()
