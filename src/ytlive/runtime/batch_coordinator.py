"""Batch Operation Coordinator - start/stop/delete over a selection of streams.

Each record is handled independently: a record whose status makes the
operation illegal is skipped silently, and nothing is rolled back because a
neighbour failed. The batch as a whole never raises.

Eligibility:
    start  -> idle or error
    stop   -> live
    delete -> anything but live or stopping
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum

from ..domain.types import StreamStatus
from ..infra.exceptions import InvalidTransitionError, NotFoundError
from ..infra.logging import get_logger
from .lifecycle_controller import LifecycleController


class BatchOperation(str, Enum):
    START = "start"
    STOP = "stop"
    DELETE = "delete"


ELIGIBLE: dict[BatchOperation, frozenset[StreamStatus]] = {
    BatchOperation.START: frozenset({StreamStatus.IDLE, StreamStatus.ERROR}),
    BatchOperation.STOP: frozenset({StreamStatus.LIVE}),
    BatchOperation.DELETE: frozenset(
        {StreamStatus.IDLE, StreamStatus.SCHEDULED, StreamStatus.COMPLETED, StreamStatus.ERROR}
    ),
}


@dataclass
class BatchResult:
    """Outcome of one batch; ids keep the order they were requested in."""

    operation: BatchOperation
    affected: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "operation": self.operation.value,
            "affected": list(self.affected),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
        }


class BatchOperationCoordinator:
    """Applies one lifecycle operation to many streams and owns the selection set."""

    def __init__(self, controller: LifecycleController, *, max_workers: int = 4) -> None:
        self._controller = controller
        self._max_workers = max(1, max_workers)
        self._selection: list[str] = []
        self._lock = threading.Lock()
        self._log = get_logger(__name__)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @property
    def selected(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._selection)

    def select(self, *record_ids: str) -> None:
        with self._lock:
            for record_id in record_ids:
                if record_id not in self._selection:
                    self._selection.append(record_id)

    def deselect(self, *record_ids: str) -> None:
        with self._lock:
            self._selection = [r for r in self._selection if r not in record_ids]

    def toggle(self, record_id: str) -> bool:
        """Flip one id in the selection; returns True if it is now selected."""
        with self._lock:
            if record_id in self._selection:
                self._selection.remove(record_id)
                return False
            self._selection.append(record_id)
            return True

    def select_all(self, record_ids: Iterable[str]) -> None:
        """Replace the selection with ``record_ids`` (e.g. the visible page)."""
        with self._lock:
            self._selection = list(dict.fromkeys(record_ids))

    def clear_selection(self) -> None:
        with self._lock:
            self._selection = []

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------

    def batch_start(self, record_ids: Iterable[str] | None = None) -> BatchResult:
        return self.apply(BatchOperation.START, record_ids)

    def batch_stop(self, record_ids: Iterable[str] | None = None) -> BatchResult:
        return self.apply(BatchOperation.STOP, record_ids)

    def batch_delete(self, record_ids: Iterable[str] | None = None) -> BatchResult:
        return self.apply(BatchOperation.DELETE, record_ids)

    def apply(self, operation: BatchOperation | str, record_ids: Iterable[str] | None = None) -> BatchResult:
        """Apply ``operation`` to ``record_ids`` (default: the current selection).

        The selection is cleared afterwards.
        """
        operation = BatchOperation(operation)
        if record_ids is None:
            ids = list(self.selected)
        else:
            ids = list(dict.fromkeys(record_ids))

        eligible: list[str] = []
        outcome: dict[str, str] = {}
        for record_id in ids:
            record = self._controller.store.find(record_id)
            if record is None or record.status not in ELIGIBLE[operation]:
                outcome[record_id] = "skipped"
            else:
                eligible.append(record_id)

        if len(eligible) > 1 and self._max_workers > 1:
            with ThreadPoolExecutor(max_workers=min(self._max_workers, len(eligible))) as pool:
                for record_id, result in zip(eligible, pool.map(lambda r: self._apply_one(operation, r), eligible)):
                    outcome[record_id] = result
        else:
            for record_id in eligible:
                outcome[record_id] = self._apply_one(operation, record_id)

        result = BatchResult(operation=operation)
        for record_id in ids:
            getattr(result, outcome[record_id]).append(record_id)

        self.clear_selection()
        self._log.info(
            "batch_applied",
            operation=operation.value,
            affected=len(result.affected),
            skipped=len(result.skipped),
            failed=len(result.failed),
        )
        return result

    def _apply_one(self, operation: BatchOperation, record_id: str) -> str:
        """Run one command; returns "affected", "skipped" or "failed"."""
        try:
            if operation == BatchOperation.START:
                record = self._controller.start_stream(record_id)
                return "affected" if record.status == StreamStatus.LIVE else "failed"
            if operation == BatchOperation.STOP:
                record = self._controller.stop_stream(record_id)
                return "affected" if record.status == StreamStatus.COMPLETED else "failed"
            self._controller.delete_stream(record_id)
            return "affected"
        except (InvalidTransitionError, NotFoundError) as exc:
            # Status changed between the eligibility check and the command
            self._log.debug("batch_item_skipped", operation=operation.value, stream_id=record_id, reason=str(exc))
            return "skipped"
        except Exception:
            self._log.exception("batch_item_failed", operation=operation.value, stream_id=record_id)
            return "failed"
