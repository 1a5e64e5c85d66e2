"""Stream Store - in-memory authoritative table of stream records.

The store enforces only identity uniqueness and the removal guard. Every
status-dependent rule lives in the lifecycle controller, which is the only
component allowed to call the write path.

Write path (LifecycleController only):
    insert(record), update(record), remove(record_id)

Read path (everyone):
    get(record_id), find(record_id), list(...)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from ..domain.stream import StreamRecord
from ..infra.exceptions import DuplicateIdError, InvalidTransitionError, NotFoundError

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str, "StreamRecord | None"], None]


class StreamStore:
    """Thread-safe table of :class:`StreamRecord` keyed by id.

    Records are immutable, so readers receive snapshots that can never be
    torn by a concurrent transition. Iteration order is insertion order.

    An optional ``listener`` is called after each committed mutation with
    ``(record_id, record)`` (``record`` is ``None`` after removal). It runs
    outside the store lock.
    """

    def __init__(self, listener: ChangeListener | None = None) -> None:
        self._records: dict[str, StreamRecord] = {}
        self._retired_ids: set[str] = set()
        self._lock = threading.Lock()
        self._listener = listener

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def insert(self, record: StreamRecord) -> StreamRecord:
        with self._lock:
            if record.id in self._records or record.id in self._retired_ids:
                raise DuplicateIdError(f"stream id {record.id!r} already used")
            self._records[record.id] = record
        self._notify(record.id, record)
        return record

    def update(self, record: StreamRecord) -> StreamRecord:
        """Replace the whole record stored under ``record.id``."""
        with self._lock:
            if record.id not in self._records:
                raise NotFoundError(f"stream {record.id!r} not found")
            self._records[record.id] = record
        self._notify(record.id, record)
        return record

    def remove(self, record_id: str) -> StreamRecord:
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                raise NotFoundError(f"stream {record_id!r} not found")
            if record.status.is_active:
                raise InvalidTransitionError(
                    f"cannot delete stream {record_id!r} while {record.status.value}"
                )
            del self._records[record_id]
            self._retired_ids.add(record_id)
        self._notify(record_id, None)
        return record

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> StreamRecord:
        with self._lock:
            record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(f"stream {record_id!r} not found")
        return record

    def find(self, record_id: str) -> StreamRecord | None:
        with self._lock:
            return self._records.get(record_id)

    def list(
        self,
        sort_key: Callable[[StreamRecord], Any] | None = None,
        *,
        reverse: bool = False,
    ) -> list[StreamRecord]:
        """Return all records in insertion order, or stably sorted by ``sort_key``."""
        with self._lock:
            records = list(self._records.values())
        if sort_key is not None:
            records.sort(key=sort_key, reverse=reverse)
        return records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self._records

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _notify(self, record_id: str, record: StreamRecord | None) -> None:
        if self._listener is None:
            return
        try:
            self._listener(record_id, record)
        except Exception:
            logger.exception("StreamStore: change listener failed for %s", record_id)
