"""Tests for SQLite persistence of stream records."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ytlive.domain.schedule import ScheduleConfig
from ytlive.domain.stream import StreamRecord
from ytlive.domain.types import StreamStatus
from ytlive.infra.db import get_engine
from ytlive.infra.stream_repository import StreamRepository
from ytlive.runtime.broadcaster import InMemoryBroadcaster
from ytlive.runtime.lifecycle_controller import RESTART_REASON, LifecycleController
from ytlive.runtime.stream_store import StreamStore

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def repository(tmp_path):
    repo = StreamRepository(get_engine(f"sqlite:///{tmp_path / 'ytlive.db'}", echo=False))
    repo.create_schema()
    return repo


def _record(record_id: str, offset: int = 0, **changes) -> StreamRecord:
    record = StreamRecord(
        id=record_id,
        name=f"Stream {record_id}",
        destination_key=f"key-{record_id}",
        media_path="/media/loop.mp4",
        schedule=ScheduleConfig.for_absolute("2025-06-01T18:30:00", "Europe/Berlin"),
        created_at=T0 + timedelta(seconds=offset),
    )
    return record.with_changes(**changes) if changes else record


def test_save_and_load(repository):
    record = _record(
        "a",
        status=StreamStatus.COMPLETED,
        started_at=T0,
        stopped_at=T0 + timedelta(minutes=5),
        last_elapsed_seconds=300,
        last_error=None,
    )
    repository.save(record)

    [loaded] = repository.load_all()

    assert loaded == record
    assert loaded.created_at.tzinfo is not None


def test_save_overwrites(repository):
    repository.save(_record("a"))
    repository.save(_record("a", name="Renamed", status=StreamStatus.ERROR, last_error="ingest refused"))

    [loaded] = repository.load_all()
    assert loaded.name == "Renamed"
    assert loaded.last_error == "ingest refused"


def test_load_orders_by_creation(repository):
    repository.save(_record("late", offset=20))
    repository.save(_record("early", offset=10))
    assert [r.id for r in repository.load_all()] == ["early", "late"]


def test_delete(repository):
    repository.save(_record("a"))
    repository.delete("a")
    repository.delete("never-saved")
    assert repository.load_all() == []


def test_store_listener_writes_through(repository):
    store = StreamStore(listener=repository.on_change)
    controller = LifecycleController(store, InMemoryBroadcaster())

    keep = controller.add_stream("Keep", "key-1", "/media/a.mp4", start_immediately=True)
    drop = controller.add_stream("Drop", "key-2", "/media/b.mp4")
    controller.delete_stream(drop.id)

    [persisted] = repository.load_all()
    assert persisted.id == keep.id
    assert persisted.status == StreamStatus.LIVE
    assert persisted.elapsed_seconds == 0


def test_restart_recovery_from_database(repository):
    repository.save(_record("a", status=StreamStatus.LIVE, started_at=T0, elapsed_seconds=90))
    store = StreamStore(listener=repository.on_change)
    controller = LifecycleController(store, InMemoryBroadcaster())

    assert controller.restore(repository.load_all()) == 1

    [persisted] = repository.load_all()
    assert persisted.status == StreamStatus.ERROR
    assert persisted.last_error == RESTART_REASON
    assert persisted.last_elapsed_seconds == 90
