"""
Runtime wiring.

Builds one process-wide set of engine components from settings: the store
(mirrored to the database when persistence is on), a broadcaster, the
lifecycle controller, the batch coordinator and the reconciliation loop.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..infra.db import get_engine
from ..infra.logging import get_logger
from ..infra.settings import Settings
from ..infra.settings import settings as default_settings
from ..infra.stream_repository import StreamRepository
from .batch_coordinator import BatchOperationCoordinator
from .broadcaster import Broadcaster, InMemoryBroadcaster
from .clock import Clock, MasterClock
from .lifecycle_controller import LifecycleController
from .reconciler import ReconciliationLoop
from .stream_store import StreamStore

_log = get_logger(__name__)


@dataclass
class StreamRuntime:
    settings: Settings
    store: StreamStore
    broadcaster: Broadcaster
    controller: LifecycleController
    coordinator: BatchOperationCoordinator
    reconciler: ReconciliationLoop
    repository: StreamRepository | None = None

    def start(self) -> None:
        self.reconciler.start()

    def shutdown(self) -> None:
        """Stop every live stream, then the loop, then the broadcaster."""
        stopped = self.controller.stop_all()
        self.reconciler.stop()
        shutdown = getattr(self.broadcaster, "shutdown", None)
        if callable(shutdown):
            shutdown()
        _log.info("runtime_shutdown", stopped=len(stopped))


def build_runtime(
    settings: Settings | None = None,
    *,
    dry_run: bool = False,
    clock: Clock | None = None,
    persist: bool | None = None,
    broadcaster: Broadcaster | None = None,
) -> StreamRuntime:
    """Assemble a runtime; persisted records are restored before returning.

    ``dry_run`` swaps ffmpeg for :class:`InMemoryBroadcaster`.
    """
    settings = settings or default_settings
    persist = settings.persist if persist is None else persist

    repository: StreamRepository | None = None
    if persist:
        repository = StreamRepository(get_engine(settings.database_url, echo=settings.echo_sql))
        repository.create_schema()

    if broadcaster is None:
        if dry_run:
            broadcaster = InMemoryBroadcaster()
        else:
            from ..streaming.ffmpeg_broadcaster import FFmpegBroadcaster

            broadcaster = FFmpegBroadcaster.from_settings(settings)

    store = StreamStore(listener=repository.on_change if repository else None)
    controller = LifecycleController(
        store,
        broadcaster,
        clock or MasterClock(),
        stop_retry_seconds=settings.stop_retry_seconds,
    )
    if repository is not None:
        controller.restore(repository.load_all())

    runtime = StreamRuntime(
        settings=settings,
        store=store,
        broadcaster=broadcaster,
        controller=controller,
        coordinator=BatchOperationCoordinator(controller, max_workers=settings.batch_max_workers),
        reconciler=ReconciliationLoop(controller, interval_seconds=settings.reconcile_interval_seconds),
        repository=repository,
    )
    _log.info(
        "runtime_built",
        dry_run=dry_run,
        persist=repository is not None,
        streams=len(store),
    )
    return runtime
