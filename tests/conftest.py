"""
Shared pytest fixtures for the dimension gate test suite.

This module provides fixtures that are automatically available to all test files:
- Fresh state stores, metrics aggregators and buses per test
- A controllable clock for uptime accounting
- Ready-made actors covering every permission tier
- Temporary config paths for service and CLI tests

Everything is function scoped; no component is shared between tests.
"""

from collections.abc import Generator
from pathlib import Path

import pytest

from dimension_gate.config import GateConfig, use_test_paths
from dimension_gate.core.bus import GateBus
from dimension_gate.core.dimensions import Dimension
from dimension_gate.core.gate import AccessGate
from dimension_gate.core.metrics import MetricsAggregator
from dimension_gate.core.permissions import (
    ADMIN_GRANT,
    BYPASS_GRANT,
    ActorCapabilities,
    CommandKind,
    PermissionResolver,
    dimension_grant,
)
from dimension_gate.core.state import StateStore
from dimension_gate.storage import MemoryReportWriter, MemoryStateBackend

# ============================================================================
# CLOCK
# ============================================================================


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# CORE COMPONENT FIXTURES
# ============================================================================


@pytest.fixture
def report_writer() -> MemoryReportWriter:
    return MemoryReportWriter()


@pytest.fixture
def metrics(report_writer: MemoryReportWriter, clock: FakeClock) -> MetricsAggregator:
    """Metrics aggregator on the fake clock, writing to memory."""
    return MetricsAggregator(report_writer, clock=clock)


@pytest.fixture
def backend() -> MemoryStateBackend:
    return MemoryStateBackend()


@pytest.fixture
def store(backend: MemoryStateBackend, metrics: MetricsAggregator) -> StateStore:
    """State store with every dimension open, persisting to memory."""
    return StateStore(backend, metrics=metrics)


@pytest.fixture
def bus() -> GateBus:
    return GateBus()


@pytest.fixture
def resolver(store: StateStore) -> PermissionResolver:
    return PermissionResolver(store, ops_bypass_restrictions=True)


@pytest.fixture
def gate(
    store: StateStore, resolver: PermissionResolver, metrics: MetricsAggregator, bus: GateBus
) -> AccessGate:
    return AccessGate(store, resolver, metrics, bus)


# ============================================================================
# ACTOR FIXTURES
# ============================================================================


@pytest.fixture
def player() -> ActorCapabilities:
    """Ordinary player with no grants."""
    return ActorCapabilities(actor_id="alice")


@pytest.fixture
def operator() -> ActorCapabilities:
    """Server operator with no explicit grants."""
    return ActorCapabilities(actor_id="op", operator=True)


@pytest.fixture
def admin() -> ActorCapabilities:
    return ActorCapabilities.from_grants("admin", [ADMIN_GRANT])


@pytest.fixture
def bypasser() -> ActorCapabilities:
    return ActorCapabilities.from_grants("bob", [BYPASS_GRANT])


@pytest.fixture
def nether_visitor() -> ActorCapabilities:
    """Player holding only the nether-specific access grant."""
    return ActorCapabilities.from_grants("carol", [dimension_grant(Dimension.NETHER)])


@pytest.fixture
def opener() -> ActorCapabilities:
    """Player allowed to run the open command, nothing else."""
    return ActorCapabilities.from_grants("dave", [CommandKind.OPEN.grant])


# ============================================================================
# CONFIG FIXTURES
# ============================================================================


@pytest.fixture
def test_config(tmp_path: Path) -> Generator[GateConfig, None, None]:
    """
    Module config singleton with every file redirected into ``tmp_path``.

    Yields:
        The patched GateConfig. Paths are restored after the test.
    """
    with use_test_paths(tmp_path) as cfg:
        yield cfg
