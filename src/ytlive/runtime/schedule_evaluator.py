"""Schedule evaluation: stop policy + clock -> stop decision.

Everything in this module is a pure function of its arguments. "Now" is
always passed in explicitly; nothing here reads the process clock.

Absolute schedules carry a naive civil date-time and an IANA zone name.
Localization honors the zone's offset in effect on that date:

- a local time inside a spring-forward gap does not exist and raises
  :class:`ScheduleConfigError`;
- a local time inside a fall-back overlap is ambiguous and resolves to the
  later of the two instants.

Deadlines are always returned in UTC.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..domain.schedule import ScheduleConfig
from ..domain.types import ScheduleType
from ..infra.exceptions import ScheduleConfigError, ValidationError
from .clock import ensure_aware


class StopDecisionKind(str, Enum):
    NO_DEADLINE = "no_deadline"
    DEADLINE = "deadline"
    EXPIRED = "expired"


@dataclass(frozen=True)
class StopDecision:
    """Outcome of evaluating a schedule at one instant."""

    kind: StopDecisionKind
    deadline: datetime | None = None
    remaining_seconds: float | None = None

    @property
    def expired(self) -> bool:
        return self.kind == StopDecisionKind.EXPIRED


NO_DEADLINE = StopDecision(kind=StopDecisionKind.NO_DEADLINE)

# Naive civil time only; offsets, fractions and date-only forms are rejected.
LOCAL_DATETIME_FORMATS = ("%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S")


def parse_local_datetime(text: str) -> datetime:
    """Parse a naive ISO date-time (``YYYY-MM-DDTHH:MM`` or with seconds)."""
    if not isinstance(text, str) or not text.strip():
        raise ScheduleConfigError("absolute schedule requires a datetime")
    for fmt in LOCAL_DATETIME_FORMATS:
        try:
            return datetime.strptime(text.strip(), fmt)
        except ValueError:
            continue
    raise ScheduleConfigError(f"invalid datetime {text!r} (expected YYYY-MM-DDTHH:MM[:SS])")


def resolve_timezone(name: str) -> tzinfo:
    """Look up an IANA timezone by name."""
    if not isinstance(name, str) or not name.strip():
        raise ScheduleConfigError("absolute schedule requires a timezone")
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise ScheduleConfigError(f"unknown timezone {name!r}") from None


def localize(naive: datetime, tz_name: str) -> datetime:
    """Attach ``tz_name`` to a naive local date-time and return the UTC instant."""
    tz = resolve_timezone(tz_name)
    early = naive.replace(tzinfo=tz, fold=0)
    late = naive.replace(tzinfo=tz, fold=1)
    if early.utcoffset() == late.utcoffset():
        return early.astimezone(timezone.utc)

    # Offsets differ: either a gap (non-existent) or an overlap (ambiguous).
    round_trip = early.astimezone(timezone.utc).astimezone(tz).replace(tzinfo=None)
    if round_trip != naive:
        raise ScheduleConfigError(
            f"local time {naive.isoformat()} does not exist in {tz_name} "
            "(skipped by a daylight-saving transition)"
        )
    return late.astimezone(timezone.utc)


def resolve_deadline(schedule: ScheduleConfig, started_at: datetime | None) -> datetime | None:
    """Return the UTC instant at which ``schedule`` mandates a stop, if any."""
    if schedule.type == ScheduleType.MANUAL:
        return None

    if schedule.type == ScheduleType.DURATION:
        if schedule.duration is None:
            raise ScheduleConfigError("duration schedule requires hours, minutes and seconds")
        if started_at is None:
            raise ValueError("started_at is required to evaluate a duration schedule")
        ensure_aware(started_at)
        total = schedule.duration.total_seconds()
        if total < 0:
            raise ScheduleConfigError("duration must not be negative")
        return started_at.astimezone(timezone.utc) + timedelta(seconds=total)

    if schedule.absolute is None:
        raise ScheduleConfigError("absolute schedule requires datetime and timezone")
    naive = parse_local_datetime(schedule.absolute.datetime)
    return localize(naive, schedule.absolute.timezone)


def evaluate(schedule: ScheduleConfig, started_at: datetime | None, now: datetime) -> StopDecision:
    """Evaluate ``schedule`` for a session started at ``started_at``.

    The boundary is inclusive: ``now == deadline`` is expired.
    """
    ensure_aware(now)
    deadline = resolve_deadline(schedule, started_at)
    if deadline is None:
        return NO_DEADLINE
    remaining = (deadline - now).total_seconds()
    if remaining <= 0:
        return StopDecision(kind=StopDecisionKind.EXPIRED, deadline=deadline, remaining_seconds=0.0)
    return StopDecision(kind=StopDecisionKind.DEADLINE, deadline=deadline, remaining_seconds=remaining)


def validate_schedule(schedule: ScheduleConfig) -> ScheduleConfig:
    """Structural validation plus resolvability of absolute schedules.

    Raises ValidationError (ScheduleConfigError for unresolvable absolute
    schedules). Used at creation and edit time so bad schedules never reach
    a live stream.
    """
    if not isinstance(schedule, ScheduleConfig):
        raise ValidationError("schedule must be a ScheduleConfig")
    schedule.validate()
    if schedule.type == ScheduleType.ABSOLUTE:
        resolve_deadline(schedule, None)
    return schedule
