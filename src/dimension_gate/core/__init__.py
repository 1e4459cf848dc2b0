"""Admission-control core: state, permissions, scheduling, metrics and the gate.

Typical usage::

    from dimension_gate.core import (
        AccessGate,
        MetricsAggregator,
        PermissionResolver,
        StateStore,
    )

    metrics = MetricsAggregator()
    store = StateStore(metrics=metrics)
    gate = AccessGate(store, PermissionResolver(store), metrics)

Every component is an owned object passed to its collaborators; nothing in
this package keeps module-level state.
"""

from dimension_gate.core.bus import GateBus, GateEvent
from dimension_gate.core.dimensions import Action, Dimension, parse_action, parse_dimension
from dimension_gate.core.errors import (
    ConfigurationError,
    GateError,
    PersistenceContext,
    PersistenceError,
)
from dimension_gate.core.events import Events
from dimension_gate.core.gate import AccessGate, Decision, DecisionReason, ToggleResult
from dimension_gate.core.metrics import MetricsAggregator, MetricsSnapshot
from dimension_gate.core.permissions import (
    AccessTier,
    Actor,
    ActorCapabilities,
    CommandKind,
    PermissionResolver,
)
from dimension_gate.core.scheduler import ScheduleJob, Scheduler
from dimension_gate.core.state import StateBackend, StateStore

__all__ = [
    "AccessGate",
    "AccessTier",
    "Action",
    "Actor",
    "ActorCapabilities",
    "CommandKind",
    "ConfigurationError",
    "Decision",
    "DecisionReason",
    "Dimension",
    "Events",
    "GateBus",
    "GateError",
    "GateEvent",
    "MetricsAggregator",
    "MetricsSnapshot",
    "PermissionResolver",
    "PersistenceContext",
    "PersistenceError",
    "ScheduleJob",
    "Scheduler",
    "StateBackend",
    "StateStore",
    "ToggleResult",
    "parse_action",
    "parse_dimension",
]
