"""Tests for the in-memory stream store."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ytlive.domain.schedule import ScheduleConfig
from ytlive.domain.stream import StreamRecord
from ytlive.domain.types import StreamStatus
from ytlive.infra.exceptions import DuplicateIdError, InvalidTransitionError, NotFoundError
from ytlive.runtime.stream_store import StreamStore

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _record(record_id: str, name: str = "stream", status: StreamStatus = StreamStatus.IDLE, offset: int = 0) -> StreamRecord:
    return StreamRecord(
        id=record_id,
        name=name,
        destination_key=f"key-{record_id}",
        media_path="/media/loop.mp4",
        schedule=ScheduleConfig.manual(),
        created_at=T0 + timedelta(seconds=offset),
        status=status,
    )


class TestWrites:
    def test_insert_and_get(self):
        store = StreamStore()
        record = store.insert(_record("a"))
        assert store.get("a") is record
        assert "a" in store
        assert len(store) == 1

    def test_insert_duplicate_id(self):
        store = StreamStore()
        store.insert(_record("a"))
        with pytest.raises(DuplicateIdError):
            store.insert(_record("a", name="other"))
        assert store.get("a").name == "stream"

    def test_removed_id_is_never_reused(self):
        store = StreamStore()
        store.insert(_record("a"))
        store.remove("a")
        with pytest.raises(DuplicateIdError):
            store.insert(_record("a"))

    def test_update_replaces_whole_record(self):
        store = StreamStore()
        store.insert(_record("a"))
        store.update(_record("a", name="renamed"))
        assert store.get("a").name == "renamed"

    def test_update_unknown(self):
        with pytest.raises(NotFoundError):
            StreamStore().update(_record("ghost"))

    @pytest.mark.parametrize("status", [StreamStatus.LIVE, StreamStatus.STOPPING])
    def test_remove_active_rejected_without_mutation(self, status):
        store = StreamStore()
        record = store.insert(_record("a", status=status))
        with pytest.raises(InvalidTransitionError):
            store.remove("a")
        assert store.get("a") is record

    def test_remove_unknown(self):
        with pytest.raises(NotFoundError):
            StreamStore().remove("ghost")


class TestReads:
    def test_find_unknown_returns_none(self):
        assert StreamStore().find("ghost") is None

    def test_get_unknown_raises(self):
        with pytest.raises(NotFoundError):
            StreamStore().get("ghost")

    def test_list_keeps_insertion_order(self):
        store = StreamStore()
        for record_id in ("c", "a", "b"):
            store.insert(_record(record_id))
        assert [r.id for r in store.list()] == ["c", "a", "b"]

    def test_list_sorted(self):
        store = StreamStore()
        store.insert(_record("a", name="Zulu"))
        store.insert(_record("b", name="alpha"))
        store.insert(_record("c", name="Mike"))
        names = [r.name for r in store.list(sort_key=lambda r: r.name.lower(), reverse=True)]
        assert names == ["Zulu", "Mike", "alpha"]


class TestListener:
    def test_listener_sees_every_mutation(self):
        events = []
        store = StreamStore(listener=lambda record_id, record: events.append((record_id, record)))

        inserted = store.insert(_record("a"))
        updated = store.update(_record("a", name="renamed"))
        store.remove("a")

        assert events == [("a", inserted), ("a", updated), ("a", None)]

    def test_failed_mutation_is_not_reported(self):
        events = []
        store = StreamStore(listener=lambda record_id, record: events.append(record_id))
        with pytest.raises(NotFoundError):
            store.remove("ghost")
        assert events == []

    def test_listener_error_does_not_undo_mutation(self):
        def explode(record_id, record):
            raise RuntimeError("disk full")

        store = StreamStore(listener=explode)
        store.insert(_record("a"))
        assert "a" in store
