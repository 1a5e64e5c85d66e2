"""
Global test configuration for ytlive.

Provides the engine fixtures shared by the test suite: a stepped clock, an
in-memory broadcaster and a lifecycle controller wired to both.
"""

import itertools
import sys
from pathlib import Path

import pytest

# Ensure the project src directory is importable without relying on external environment.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from ytlive.runtime.batch_coordinator import BatchOperationCoordinator
from ytlive.runtime.broadcaster import InMemoryBroadcaster
from ytlive.runtime.clock import SteppedClock
from ytlive.runtime.lifecycle_controller import LifecycleController
from ytlive.runtime.stream_store import StreamStore


@pytest.fixture
def clock():
    """Clock frozen at 2025-01-01T12:00:00Z until advanced."""
    return SteppedClock()


@pytest.fixture
def broadcaster():
    return InMemoryBroadcaster()


@pytest.fixture
def store():
    return StreamStore()


@pytest.fixture
def controller(store, broadcaster, clock):
    """Controller issuing ids s1, s2, ... in creation order."""
    counter = itertools.count(1)
    return LifecycleController(
        store,
        broadcaster,
        clock,
        stop_retry_seconds=10.0,
        id_factory=lambda: f"s{next(counter)}",
    )


@pytest.fixture
def coordinator(controller):
    return BatchOperationCoordinator(controller, max_workers=4)
