"""
Broadcaster Protocol (Capability Provider)

The broadcaster is the component that actually transmits media to a
streaming destination. The lifecycle controller decides *when* a stream
should be broadcasting; the broadcaster only does what it is told.

Boundaries:
- Broadcaster IS allowed to: spawn/stop transmission, report whether a
  transmission is still running
- Broadcaster IS NOT allowed to: change stream records, evaluate schedules,
  decide which commands are legal

Calls are blocking with no upper bound defined by the engine. Failures are
reported by raising :class:`BroadcasterError`; the controller records them
as stream state.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ..infra.exceptions import BroadcasterError


@runtime_checkable
class Broadcaster(Protocol):
    """Protocol implemented by broadcaster providers."""

    def request_start(self, stream_id: str, destination_key: str, media_path: str) -> None:
        """Begin transmitting ``media_path`` to ``destination_key``.

        Returns once the transmission is acknowledged as running.
        Raises BroadcasterError on failure.
        """

    def request_stop(self, stream_id: str) -> None:
        """Stop transmitting ``stream_id``. Raises BroadcasterError on failure."""

    def is_active(self, stream_id: str) -> bool:
        """Return True while the transmission for ``stream_id`` is running."""


@dataclass
class BroadcastCommand:
    """One command received by :class:`InMemoryBroadcaster`."""

    action: str  # "start" | "stop"
    stream_id: str
    destination_key: str | None = None
    media_path: str | None = None


@dataclass
class _Script:
    start_failures: dict[str, str] = field(default_factory=dict)
    stop_failures: dict[str, str] = field(default_factory=dict)


class InMemoryBroadcaster:
    """Broadcaster that transmits nothing.

    Keeps a command log and a set of "running" streams. Failures can be
    scripted per stream id, and :meth:`kill` simulates a transmission dying
    underneath a live stream. Used for dry runs and tests.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active: set[str] = set()
        self._script = _Script()
        self.commands: list[BroadcastCommand] = []

    def request_start(self, stream_id: str, destination_key: str, media_path: str) -> None:
        with self._lock:
            self.commands.append(
                BroadcastCommand("start", stream_id, destination_key=destination_key, media_path=media_path)
            )
            reason = self._script.start_failures.pop(stream_id, None)
            if reason is not None:
                raise BroadcasterError(reason)
            self._active.add(stream_id)

    def request_stop(self, stream_id: str) -> None:
        with self._lock:
            self.commands.append(BroadcastCommand("stop", stream_id))
            reason = self._script.stop_failures.pop(stream_id, None)
            if reason is not None:
                raise BroadcasterError(reason)
            self._active.discard(stream_id)

    def is_active(self, stream_id: str) -> bool:
        with self._lock:
            return stream_id in self._active

    # ------------------------------------------------------------------
    # Scripting
    # ------------------------------------------------------------------

    def fail_next_start(self, stream_id: str, reason: str = "start rejected") -> None:
        with self._lock:
            self._script.start_failures[stream_id] = reason

    def fail_next_stop(self, stream_id: str, reason: str = "stop rejected") -> None:
        with self._lock:
            self._script.stop_failures[stream_id] = reason

    def kill(self, stream_id: str) -> None:
        """Simulate the transmission for ``stream_id`` exiting on its own."""
        with self._lock:
            self._active.discard(stream_id)

    def commands_for(self, stream_id: str, action: str | None = None) -> list[BroadcastCommand]:
        with self._lock:
            return [
                c for c in self.commands
                if c.stream_id == stream_id and (action is None or c.action == action)
            ]

    def shutdown(self) -> None:
        with self._lock:
            self._active.clear()
