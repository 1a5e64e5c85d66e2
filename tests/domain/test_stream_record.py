"""Tests for StreamRecord and its camelCase wire shape."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from ytlive.domain.schedule import ScheduleConfig
from ytlive.domain.stream import StreamRecord
from ytlive.domain.types import StreamStatus
from ytlive.infra.exceptions import ValidationError

CREATED = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _make_record(**changes) -> StreamRecord:
    record = StreamRecord(
        id="s1",
        name="Lo-fi loop",
        destination_key="abcd-efgh-ijkl",
        media_path="/media/loop.mp4",
        schedule=ScheduleConfig.for_duration(0, 30, 0),
        created_at=CREATED,
    )
    return record.with_changes(**changes) if changes else record


def test_new_record_is_idle_without_timestamps():
    record = _make_record()
    assert record.status == StreamStatus.IDLE
    assert record.started_at is None
    assert record.elapsed_seconds is None


def test_to_dict_uses_camel_case_and_omits_unset_fields():
    payload = _make_record().to_dict()
    assert payload == {
        "id": "s1",
        "name": "Lo-fi loop",
        "destinationKey": "abcd-efgh-ijkl",
        "mediaPath": "/media/loop.mp4",
        "status": "idle",
        "schedule": {"type": "duration", "duration": {"hours": 0, "minutes": 30, "seconds": 0}, "absolute": None},
        "createdAt": "2025-01-01T12:00:00+00:00",
    }


def test_to_dict_live_record_carries_elapsed():
    payload = _make_record(status=StreamStatus.LIVE, started_at=CREATED, elapsed_seconds=42).to_dict()
    assert payload["status"] == "live"
    assert payload["startedAt"] == "2025-01-01T12:00:00+00:00"
    assert payload["elapsedSeconds"] == 42
    assert "lastElapsedSeconds" not in payload


def test_from_dict_restores_record():
    payload = _make_record(
        status=StreamStatus.COMPLETED,
        started_at=CREATED,
        stopped_at=datetime(2025, 1, 1, 12, 30, tzinfo=timezone.utc),
        last_elapsed_seconds=1800,
    ).to_dict()
    payload["createdAt"] = "2025-01-01T12:00:00Z"

    record = StreamRecord.from_dict(payload)

    assert record.status == StreamStatus.COMPLETED
    assert record.created_at == CREATED
    assert record.stopped_at.tzinfo is not None
    assert record.last_elapsed_seconds == 1800
    assert record.schedule == ScheduleConfig.for_duration(0, 30, 0)


def test_from_dict_unknown_status():
    payload = _make_record().to_dict()
    payload["status"] = "paused"
    with pytest.raises(ValidationError):
        StreamRecord.from_dict(payload)


def test_from_dict_requires_created_at():
    payload = _make_record().to_dict()
    del payload["createdAt"]
    with pytest.raises(ValidationError):
        StreamRecord.from_dict(payload)


def test_with_changes_returns_new_snapshot():
    record = _make_record()
    live = record.with_changes(status=StreamStatus.LIVE)
    assert record.status == StreamStatus.IDLE
    assert live.status == StreamStatus.LIVE
    assert live.id == record.id


def test_is_active_statuses():
    assert StreamStatus.LIVE.is_active
    assert StreamStatus.STOPPING.is_active
    assert not StreamStatus.SCHEDULED.is_active
    assert not StreamStatus.ERROR.is_active
