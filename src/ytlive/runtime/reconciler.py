"""Reconciliation loop - drives the controller's reconciliation pass on a timer.

The pass itself (liveness, scheduled stops, elapsed time) lives in
:meth:`LifecycleController.reconcile`; this module only owns the thread.
"""

from __future__ import annotations

import threading

from ..infra.logging import get_logger
from .lifecycle_controller import LifecycleController, ReconcileReport


class ReconciliationLoop:
    """Background thread calling ``controller.reconcile()`` every ``interval_seconds``."""

    def __init__(self, controller: LifecycleController, *, interval_seconds: float = 3.0) -> None:
        if interval_seconds <= 0.0:
            raise ValueError("interval_seconds must be greater than zero")
        self._controller = controller
        self._interval = interval_seconds
        self._log = get_logger(__name__)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._passes = 0
        self._last_report: ReconcileReport | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def pass_count(self) -> int:
        return self._passes

    @property
    def last_report(self) -> ReconcileReport | None:
        return self._last_report

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background reconciliation thread."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="ReconciliationLoop",
            daemon=True,
        )
        self._thread.start()
        self._log.info("reconciler_started", interval_seconds=self._interval)

    def stop(self) -> None:
        """Stop the background reconciliation thread."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval + 5)
            self._thread = None
        self._log.info("reconciler_stopped", passes=self._passes)

    def run_once(self) -> ReconcileReport:
        report = self._controller.reconcile()
        self._passes += 1
        self._last_report = report
        if report.stopped or report.failed or report.retried:
            self._log.info(
                "reconcile_pass",
                stopped=report.stopped,
                failed=report.failed,
                retried=report.retried,
            )
        return report

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background loop: reconcile -> sleep -> repeat."""
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                self._log.exception("reconcile_pass_failed")
            self._stop_event.wait(timeout=self._interval)
