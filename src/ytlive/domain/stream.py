"""
Stream record value type.

Records are frozen: the lifecycle controller replaces a whole record on
every transition, so any reader holding a record holds a consistent
snapshot of ``status`` and ``elapsed_seconds``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from ..infra.exceptions import ValidationError
from .schedule import ScheduleConfig
from .types import StreamStatus


def _format_ts(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def _parse_ts(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"invalid timestamp {value!r}") from None
    if parsed.tzinfo is None:
        # Persisted timestamps are always UTC
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class StreamRecord:
    """One stream job: a media file pushed to a destination under a stop policy."""

    id: str
    name: str
    destination_key: str
    media_path: str
    schedule: ScheduleConfig
    created_at: datetime
    status: StreamStatus = StreamStatus.IDLE
    started_at: datetime | None = None
    stopped_at: datetime | None = None
    elapsed_seconds: int | None = None
    last_elapsed_seconds: int | None = None
    last_error: str | None = None

    def with_changes(self, **changes: Any) -> StreamRecord:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Return the stable camelCase wire shape; unset optional fields are omitted."""
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "destinationKey": self.destination_key,
            "mediaPath": self.media_path,
            "status": self.status.value,
            "schedule": self.schedule.to_dict(),
            "startedAt": _format_ts(self.started_at),
            "stoppedAt": _format_ts(self.stopped_at),
            "createdAt": _format_ts(self.created_at),
            "elapsedSeconds": self.elapsed_seconds,
            "lastElapsedSeconds": self.last_elapsed_seconds,
            "lastError": self.last_error,
        }
        return {k: v for k, v in payload.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StreamRecord:
        try:
            status = StreamStatus(data.get("status", StreamStatus.IDLE.value))
        except ValueError:
            raise ValidationError(f"unknown stream status {data.get('status')!r}") from None
        created_at = _parse_ts(data.get("createdAt"))
        if created_at is None:
            raise ValidationError("createdAt is required")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            destination_key=str(data["destinationKey"]),
            media_path=str(data["mediaPath"]),
            schedule=ScheduleConfig.from_dict(data.get("schedule")),
            created_at=created_at,
            status=status,
            started_at=_parse_ts(data.get("startedAt")),
            stopped_at=_parse_ts(data.get("stoppedAt")),
            elapsed_seconds=data.get("elapsedSeconds"),
            last_elapsed_seconds=data.get("lastElapsedSeconds"),
            last_error=data.get("lastError"),
        )
