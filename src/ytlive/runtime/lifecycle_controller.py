"""Lifecycle Controller - the stream state machine.

States: idle, scheduled, live, stopping, completed, error.

    idle/error/completed --start--> live          (broadcaster start acknowledged)
    idle/error/completed --start--> error         (broadcaster start rejected)
    live --stop / schedule expired--> stopping --ack--> completed
    live --broadcaster failure--> error
    not live/stopping --delete--> (removed)
    not live/stopping --edit--> same state

``scheduled`` is a valid status value with no transitions into or out of it.

The controller is the only writer of the stream store. Transitions of one
record are linearized by a per-record lock; broadcaster calls are made with
no lock held, so status reads never wait on an in-flight command. An
in-flight table guarded by a short controller-wide lock keeps a second
command (or a delete) from racing one already issued. Lock order is always
record lock, then guard.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..domain.schedule import ScheduleConfig
from ..domain.stream import StreamRecord
from ..domain.types import StreamStatus
from ..infra.exceptions import (
    BroadcasterError,
    DuplicateIdError,
    DuplicateKeyError,
    InvalidTransitionError,
    NotFoundError,
    ScheduleConfigError,
    ValidationError,
)
from ..infra.logging import get_logger
from .broadcaster import Broadcaster
from .clock import Clock, MasterClock
from .schedule_evaluator import NO_DEADLINE, evaluate, validate_schedule
from .stream_store import StreamStore

STARTABLE = frozenset({StreamStatus.IDLE, StreamStatus.ERROR, StreamStatus.COMPLETED})

SORT_KEYS: dict[str, Callable[[StreamRecord], object]] = {
    "created_at": lambda r: r.created_at,
    "name": lambda r: r.name.lower(),
    "status": lambda r: r.status.value,
}

DEATH_REASON = "broadcast exited unexpectedly"
RESTART_REASON = "interrupted by restart"


@dataclass
class ReconcileReport:
    """What one reconciliation pass did."""

    evaluated_at: datetime
    refreshed: list[str] = field(default_factory=list)
    stopped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    retried: list[str] = field(default_factory=list)


def _require_text(value: str | None, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value)


class LifecycleController:
    """Owns every stream transition and the commands sent to the broadcaster."""

    def __init__(
        self,
        store: StreamStore,
        broadcaster: Broadcaster,
        clock: Clock | None = None,
        *,
        stop_retry_seconds: float = 10.0,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._clock = clock or MasterClock()
        self._stop_retry = timedelta(seconds=stop_retry_seconds)
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._log = get_logger(__name__)

        self._guard = threading.Lock()
        self._record_locks: dict[str, threading.Lock] = {}
        # record id -> "start" | "stop" for commands awaiting the broadcaster
        self._inflight: dict[str, str] = {}
        # record id -> destination key reserved by an in-flight start
        self._start_keys: dict[str, str] = {}
        # record id -> when the broadcaster last rejected a stop
        self._stop_failed_at: dict[str, datetime] = {}

    @property
    def store(self) -> StreamStore:
        return self._store

    @property
    def clock(self) -> Clock:
        return self._clock

    # ------------------------------------------------------------------
    # Operator commands
    # ------------------------------------------------------------------

    def add_stream(
        self,
        name: str,
        destination_key: str,
        media_path: str,
        schedule: ScheduleConfig | None = None,
        start_immediately: bool = False,
    ) -> StreamRecord:
        """Create a stream record in ``idle``, optionally starting it right away.

        Raises ValidationError for empty fields or an incomplete schedule,
        and DuplicateKeyError when the key is used by an active stream.
        """
        name = _require_text(name, "name").strip()
        destination_key = _require_text(destination_key, "destination_key")
        media_path = _require_text(media_path, "media_path")
        schedule = validate_schedule(schedule if schedule is not None else ScheduleConfig.manual())

        with self._guard:
            self._ensure_key_available(destination_key, exclude_id=None)

        record = StreamRecord(
            id=self._id_factory(),
            name=name,
            destination_key=destination_key,
            media_path=media_path,
            schedule=schedule,
            created_at=self._clock.now_utc(),
        )
        self._store.insert(record)
        self._log.info(
            "stream_added",
            stream_id=record.id,
            schedule_type=schedule.type.value,
            start_immediately=start_immediately,
        )

        if start_immediately:
            try:
                return self.start_stream(record.id)
            except InvalidTransitionError as exc:
                self._log.warning("stream_autostart_rejected", stream_id=record.id, error=str(exc))
                return self._store.get(record.id)
        return record

    def update_stream(
        self,
        record_id: str,
        *,
        name: str | None = None,
        destination_key: str | None = None,
        media_path: str | None = None,
        schedule: ScheduleConfig | None = None,
    ) -> StreamRecord:
        """Edit a stream that is not broadcasting. ``None`` leaves a field unchanged."""
        changes: dict[str, object] = {}
        if name is not None:
            changes["name"] = _require_text(name, "name").strip()
        if destination_key is not None:
            changes["destination_key"] = _require_text(destination_key, "destination_key")
        if media_path is not None:
            changes["media_path"] = _require_text(media_path, "media_path")
        if schedule is not None:
            changes["schedule"] = validate_schedule(schedule)

        with self._lock_for(record_id):
            record = self._store.get(record_id)
            if record.status.is_active:
                raise InvalidTransitionError(
                    f"cannot edit stream {record_id!r} while {record.status.value}"
                )
            with self._guard:
                if record_id in self._inflight:
                    raise InvalidTransitionError(
                        f"cannot edit stream {record_id!r}: {self._inflight[record_id]} in progress"
                    )
            if not changes:
                return record
            updated = self._store.update(record.with_changes(**changes))
        self._log.info("stream_updated", stream_id=record_id, fields=sorted(changes))
        return updated

    def start_stream(self, record_id: str) -> StreamRecord:
        """Issue a start command; returns the record as ``live`` or ``error``.

        Raises InvalidTransitionError when the status forbids a start,
        DuplicateKeyError when the key is busy, NotFoundError for unknown ids.
        A broadcaster failure is not raised: the record moves to ``error``.
        """
        with self._lock_for(record_id):
            record = self._store.get(record_id)
            if record.status not in STARTABLE:
                raise InvalidTransitionError(
                    f"cannot start stream {record_id!r} while {record.status.value}"
                )
            with self._guard:
                if record_id in self._inflight:
                    raise InvalidTransitionError(
                        f"cannot start stream {record_id!r}: {self._inflight[record_id]} in progress"
                    )
                self._ensure_key_available(record.destination_key, exclude_id=record_id)
                self._inflight[record_id] = "start"
                self._start_keys[record_id] = record.destination_key

        self._log.info("stream_start_requested", stream_id=record_id, media_path=record.media_path)
        try:
            self._broadcaster.request_start(record_id, record.destination_key, record.media_path)
        except BroadcasterError as exc:
            return self._complete_start(record_id, failure=str(exc) or "broadcaster failed to start")
        except Exception as exc:
            self._complete_start(record_id, failure=f"unexpected broadcaster error: {exc}")
            raise
        return self._complete_start(record_id)

    def stop_stream(self, record_id: str) -> StreamRecord:
        """Stop a live stream; returns the record as ``completed`` or still ``stopping``.

        Raises InvalidTransitionError unless the stream is ``live``.
        """
        self._begin_stop(record_id, reason="operator", strict=True)
        return self._issue_stop(record_id)

    def delete_stream(self, record_id: str) -> StreamRecord:
        """Remove a stream that is not ``live``/``stopping``; returns the removed record."""
        with self._lock_for(record_id):
            with self._guard:
                if record_id in self._inflight:
                    raise InvalidTransitionError(
                        f"cannot delete stream {record_id!r}: {self._inflight[record_id]} in progress"
                    )
            removed = self._store.remove(record_id)
            with self._guard:
                self._stop_failed_at.pop(record_id, None)
                self._record_locks.pop(record_id, None)
        self._log.info("stream_deleted", stream_id=record_id)
        return removed

    def get_stream(self, record_id: str) -> StreamRecord:
        return self._store.get(record_id)

    def list_streams(self, sort_by: str | None = None, *, descending: bool = False) -> list[StreamRecord]:
        """Read-only snapshot of every record, in insertion order unless ``sort_by`` is given."""
        if sort_by is None:
            records = self._store.list()
            return list(reversed(records)) if descending else records
        key = SORT_KEYS.get(sort_by)
        if key is None:
            raise ValidationError(f"cannot sort by {sort_by!r} (expected one of {', '.join(SORT_KEYS)})")
        return self._store.list(sort_key=key, reverse=descending)

    # ------------------------------------------------------------------
    # Broadcaster feedback
    # ------------------------------------------------------------------

    def report_failure(
        self,
        record_id: str,
        reason: str,
        now: datetime | None = None,
        *,
        started_at: datetime | None = None,
    ) -> StreamRecord | None:
        """Record an unrecoverable broadcast failure of a live stream.

        Returns the record moved to ``error``, or None when the stream is not
        live (unknown, already stopping, or a command is in flight). When
        ``started_at`` is given the failure only applies to the session that
        started at that instant.
        """
        try:
            lock = self._lock_for(record_id)
        except NotFoundError:
            return None
        with lock:
            record = self._store.find(record_id)
            if record is None or record.status != StreamStatus.LIVE:
                return None
            if started_at is not None and record.started_at != started_at:
                return None
            with self._guard:
                if record_id in self._inflight:
                    return None
            now = now or self._clock.now_utc()
            failed = self._store.update(
                record.with_changes(
                    status=StreamStatus.ERROR,
                    elapsed_seconds=None,
                    last_elapsed_seconds=self._elapsed(record, now),
                    stopped_at=now,
                    last_error=reason,
                )
            )
        self._log.warning(
            "stream_failed",
            stream_id=record_id,
            reason=reason,
            elapsed_seconds=failed.last_elapsed_seconds,
        )
        return failed

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, now: datetime | None = None) -> ReconcileReport:
        """One reconciliation pass over every live or stopping stream.

        Live streams are checked for liveness, then their schedule is
        evaluated: expired ones are stopped, the others get a fresh
        ``elapsed_seconds``. Stopping streams whose stop was rejected are
        retried once ``stop_retry_seconds`` have passed. Running the pass
        twice at the same instant issues at most one stop per stream.
        """
        now = now or self._clock.now_utc()
        report = ReconcileReport(evaluated_at=now)
        for record in self._store.list():
            if record.status == StreamStatus.LIVE:
                self._reconcile_live(record, now, report)
            elif record.status == StreamStatus.STOPPING:
                self._retry_stop_if_due(record.id, now, report)
        return report

    def restore(self, records: Iterable[StreamRecord]) -> int:
        """Load persisted records into an empty runtime.

        Nothing can still be broadcasting after a restart, so records saved
        as ``live`` or ``stopping`` come back as ``error``.
        """
        restored = 0
        for record in sorted(records, key=lambda r: r.created_at):
            if record.status.is_active:
                last_elapsed = record.elapsed_seconds
                if last_elapsed is None:
                    last_elapsed = record.last_elapsed_seconds
                record = record.with_changes(
                    status=StreamStatus.ERROR,
                    elapsed_seconds=None,
                    last_elapsed_seconds=last_elapsed,
                    last_error=RESTART_REASON,
                )
            elif record.elapsed_seconds is not None:
                record = record.with_changes(elapsed_seconds=None)
            try:
                self._store.insert(record)
            except DuplicateIdError:
                self._log.warning("stream_restore_skipped", stream_id=record.id)
                continue
            restored += 1
        self._log.info("streams_restored", count=restored)
        return restored

    def stop_all(self) -> list[str]:
        """Stop every live stream (shutdown path); returns the ids stopped."""
        stopped: list[str] = []
        for record in self._store.list():
            if record.status != StreamStatus.LIVE:
                continue
            if self._begin_stop(record.id, reason="shutdown", strict=False) is None:
                continue
            self._issue_stop(record.id)
            stopped.append(record.id)
        return stopped

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _lock_for(self, record_id: str) -> threading.Lock:
        """Per-record lock; raises NotFoundError for ids the store does not hold."""
        with self._guard:
            lock = self._record_locks.get(record_id)
            if lock is None:
                if record_id not in self._store:
                    raise NotFoundError(f"stream {record_id!r} not found")
                lock = self._record_locks[record_id] = threading.Lock()
            return lock

    def _ensure_key_available(self, destination_key: str, *, exclude_id: str | None) -> None:
        # Caller holds self._guard
        for other in self._store.list():
            if other.id == exclude_id or other.destination_key != destination_key:
                continue
            if other.status.is_active:
                raise DuplicateKeyError(
                    f"destination key is already used by active stream {other.id!r}"
                )
        for other_id, key in self._start_keys.items():
            if other_id != exclude_id and key == destination_key:
                raise DuplicateKeyError(
                    f"destination key is already used by stream {other_id!r} (start in progress)"
                )

    @staticmethod
    def _elapsed(record: StreamRecord, now: datetime) -> int:
        if record.started_at is None:
            return record.elapsed_seconds or 0
        return max(0, int((now - record.started_at).total_seconds()))

    def _complete_start(self, record_id: str, failure: str | None = None) -> StreamRecord:
        with self._lock_for(record_id):
            now = self._clock.now_utc()
            record = self._store.get(record_id)
            if failure is None:
                record = record.with_changes(
                    status=StreamStatus.LIVE,
                    started_at=now,
                    stopped_at=None,
                    elapsed_seconds=0,
                    last_error=None,
                )
            else:
                record = record.with_changes(
                    status=StreamStatus.ERROR,
                    elapsed_seconds=None,
                    last_error=failure,
                )
            record = self._store.update(record)
            with self._guard:
                self._inflight.pop(record_id, None)
                self._start_keys.pop(record_id, None)

        if failure is None:
            self._log.info("stream_started", stream_id=record_id, started_at=now.isoformat())
        else:
            self._log.error("stream_start_failed", stream_id=record_id, error=failure)
        return record

    def _begin_stop(
        self,
        record_id: str,
        *,
        reason: str,
        strict: bool,
        now: datetime | None = None,
    ) -> StreamRecord | None:
        """Move a live record to ``stopping`` and reserve the stop command.

        With ``strict`` an illegal state raises InvalidTransitionError;
        otherwise None is returned so callers can skip quietly.
        """
        try:
            lock = self._lock_for(record_id)
        except NotFoundError:
            if strict:
                raise
            return None
        with lock:
            record = self._store.get(record_id)
            with self._guard:
                busy = record_id in self._inflight
            if record.status != StreamStatus.LIVE or busy:
                if strict:
                    raise InvalidTransitionError(
                        f"cannot stop stream {record_id!r} while {record.status.value}"
                    )
                return None
            now = now or self._clock.now_utc()
            stopping = self._store.update(
                record.with_changes(
                    status=StreamStatus.STOPPING,
                    elapsed_seconds=None,
                    last_elapsed_seconds=self._elapsed(record, now),
                    last_error=None,
                )
            )
            with self._guard:
                self._inflight[record_id] = "stop"

        self._log.info(
            "stream_stop_requested",
            stream_id=record_id,
            reason=reason,
            elapsed_seconds=stopping.last_elapsed_seconds,
        )
        return stopping

    def _issue_stop(self, record_id: str, now: datetime | None = None) -> StreamRecord:
        try:
            self._broadcaster.request_stop(record_id)
        except BroadcasterError as exc:
            return self._complete_stop(record_id, failure=str(exc) or "broadcaster failed to stop", now=now)
        except Exception as exc:
            self._complete_stop(record_id, failure=f"unexpected broadcaster error: {exc}", now=now)
            raise
        return self._complete_stop(record_id, now=now)

    def _complete_stop(
        self,
        record_id: str,
        failure: str | None = None,
        now: datetime | None = None,
    ) -> StreamRecord:
        with self._lock_for(record_id):
            now = now or self._clock.now_utc()
            record = self._store.get(record_id)
            if failure is None:
                record = record.with_changes(status=StreamStatus.COMPLETED, stopped_at=now, last_error=None)
            else:
                # Stays in stopping; the reconciliation pass retries.
                record = record.with_changes(last_error=failure)
            record = self._store.update(record)
            with self._guard:
                self._inflight.pop(record_id, None)
                if failure is None:
                    self._stop_failed_at.pop(record_id, None)
                else:
                    self._stop_failed_at[record_id] = now

        if failure is None:
            self._log.info(
                "stream_completed",
                stream_id=record_id,
                elapsed_seconds=record.last_elapsed_seconds,
            )
        else:
            self._log.error("stream_stop_failed", stream_id=record_id, error=failure)
        return record

    def _reconcile_live(self, snapshot: StreamRecord, now: datetime, report: ReconcileReport) -> None:
        record_id = snapshot.id
        if not self._broadcaster.is_active(record_id):
            failed = self.report_failure(record_id, DEATH_REASON, now=now, started_at=snapshot.started_at)
            if failed is not None:
                report.failed.append(record_id)
            return

        record = self._store.find(record_id)
        if record is None or record.status != StreamStatus.LIVE:
            return
        try:
            decision = evaluate(record.schedule, record.started_at, now)
        except (ScheduleConfigError, ValueError) as exc:
            self._log.warning("stream_schedule_unresolvable", stream_id=record_id, error=str(exc))
            decision = NO_DEADLINE

        if decision.expired:
            if self._begin_stop(record_id, reason="schedule", strict=False, now=now) is not None:
                self._issue_stop(record_id, now=now)
                report.stopped.append(record_id)
            return

        try:
            lock = self._lock_for(record_id)
        except NotFoundError:
            return
        with lock:
            current = self._store.find(record_id)
            if current is None or current.status != StreamStatus.LIVE:
                return
            elapsed = self._elapsed(current, now)
            if elapsed != current.elapsed_seconds:
                self._store.update(current.with_changes(elapsed_seconds=elapsed))
        report.refreshed.append(record_id)

    def _retry_stop_if_due(self, record_id: str, now: datetime, report: ReconcileReport) -> None:
        try:
            lock = self._lock_for(record_id)
        except NotFoundError:
            return
        with lock:
            record = self._store.find(record_id)
            if record is None or record.status != StreamStatus.STOPPING:
                return
            with self._guard:
                if record_id in self._inflight:
                    return
                failed_at = self._stop_failed_at.get(record_id)
                if failed_at is not None and now - failed_at < self._stop_retry:
                    return
                self._inflight[record_id] = "stop"

        self._log.info("stream_stop_retried", stream_id=record_id)
        self._issue_stop(record_id, now=now)
        report.retried.append(record_id)
