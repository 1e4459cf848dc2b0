"""Access gate: the entry point for every dimension transition attempt.

:class:`AccessGate` is what the host calls when an actor tries to move into
a dimension, and when an admin asks to open or close one.

Evaluation sequence (``evaluate``):

1. Record the attempt. Every evaluation counts, including trivially allowed
   ones and operator overrides.
2. Ask the :class:`~dimension_gate.core.permissions.PermissionResolver`
   which tier (if any) admits the actor.
3. Apply the operator escape hatch. This happens here, after the resolver
   has answered, never before it: an operator entering a closed dimension
   is let through with ``OPERATOR_OVERRIDE`` so the notifier can warn them.
4. For a real denial, record it and pick a reason the notifier can render.
5. Publish the decision on the bus and return it.

Toggling (``toggle``):
    Checks the actor's command permission when an actor is given (console
    callers pass ``None``), then calls :meth:`StateStore.set_open`. A
    dimension already in the requested state yields ``changed=False``; that
    is an outcome, not an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from dimension_gate.core.bus import GateBus
from dimension_gate.core.dimensions import Dimension
from dimension_gate.core.events import Events
from dimension_gate.core.metrics import MetricsAggregator
from dimension_gate.core.permissions import AccessTier, Actor, CommandKind, PermissionResolver
from dimension_gate.core.state import StateStore

logger = logging.getLogger(__name__)


class DecisionReason(Enum):
    """Why an access decision came out the way it did."""

    # Allowed
    ALLOWED = "allowed"  # dimension open
    GRANTED = "granted"  # bypass, admin or dimension-specific grant
    OPERATOR_OVERRIDE = "operator_override"  # operator through a closed dimension

    # Denied
    DIMENSION_CLOSED = "dimension_closed"
    # Closed, but the actor holds the open command and could lift it
    DIMENSION_CLOSED_OVERRIDE_AVAILABLE = "dimension_closed_override_available"


@dataclass(frozen=True)
class Decision:
    """Outcome of one :meth:`AccessGate.evaluate` call.

    Attributes:
        allow: Whether the transition may proceed.
        reason: Rendering hint for the notifier.
        dimension: Requested dimension.
        actor_id: The evaluated actor.
    """

    allow: bool
    reason: DecisionReason
    dimension: Dimension
    actor_id: str

    @property
    def is_warning(self) -> bool:
        """Allowed, but the actor should be told they skipped a closure."""
        return self.reason is DecisionReason.OPERATOR_OVERRIDE


@dataclass(frozen=True)
class ToggleResult:
    """Outcome of one :meth:`AccessGate.toggle` call.

    Attributes:
        dimension: Target dimension.
        requested_open: The state that was asked for.
        changed: True if the state actually moved.
        permitted: False if the actor lacked the command permission.
        is_open: State after the call.
    """

    dimension: Dimension
    requested_open: bool
    changed: bool
    permitted: bool
    is_open: bool


class AccessGate:
    """Orchestrates resolver, state store and metrics for each request.

    Args:
        store: Dimension state.
        resolver: Tiered permission resolver reading the same store.
        metrics: Aggregator receiving attempt/denial records.
        bus: Optional event bus for the notifier and broadcaster.
    """

    def __init__(
        self,
        store: StateStore,
        resolver: PermissionResolver,
        metrics: MetricsAggregator,
        bus: GateBus | None = None,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._metrics = metrics
        self._bus = bus

    def evaluate(self, actor: Actor, dimension: Dimension) -> Decision:
        """Decide whether ``actor`` may enter ``dimension``."""
        actor_id = actor.actor_id
        self._metrics.record_attempt(actor_id, dimension)

        tier = self._resolver.resolve(actor, dimension)
        if tier is AccessTier.OPEN:
            decision = Decision(True, DecisionReason.ALLOWED, dimension, actor_id)
        elif tier is not None and tier.is_bypass and actor.is_operator():
            # Operators skipping a closure always get the warning, grants or not.
            reason = (
                DecisionReason.ALLOWED
                if self._store.is_open(dimension)
                else DecisionReason.OPERATOR_OVERRIDE
            )
            decision = Decision(True, reason, dimension, actor_id)
        elif tier is not None:
            decision = Decision(True, DecisionReason.GRANTED, dimension, actor_id)
        elif actor.is_operator():
            decision = Decision(True, DecisionReason.OPERATOR_OVERRIDE, dimension, actor_id)
        else:
            self._metrics.record_denied(actor_id, dimension)
            reason = (
                DecisionReason.DIMENSION_CLOSED_OVERRIDE_AVAILABLE
                if self._resolver.can_use_command(actor, CommandKind.OPEN)
                else DecisionReason.DIMENSION_CLOSED
            )
            decision = Decision(False, reason, dimension, actor_id)

        if decision.is_warning:
            logger.info(
                "%s bypassed the closed %s dimension as an operator",
                actor_id,
                dimension.display_name,
            )
        self._publish(decision)
        return decision

    def toggle(
        self, dimension: Dimension, requested_open: bool, actor: Actor | None = None
    ) -> ToggleResult:
        """Open or close a dimension on behalf of ``actor`` (None for console)."""
        kind = CommandKind.OPEN if requested_open else CommandKind.CLOSE
        if actor is not None and not self._resolver.can_use_command(actor, kind):
            logger.info("%s lacks permission to %s dimensions", actor.actor_id, kind.value)
            return ToggleResult(
                dimension=dimension,
                requested_open=requested_open,
                changed=False,
                permitted=False,
                is_open=self._store.is_open(dimension),
            )

        changed = self._store.set_open(dimension, requested_open)
        if changed and self._bus is not None:
            self._bus.emit(
                Events.DIMENSION_OPENED if requested_open else Events.DIMENSION_CLOSED,
                {"dimension": dimension.value, "actor": actor.actor_id if actor else None},
                source="command",
            )
        return ToggleResult(
            dimension=dimension,
            requested_open=requested_open,
            changed=changed,
            permitted=True,
            is_open=self._store.is_open(dimension),
        )

    def _publish(self, decision: Decision) -> None:
        if self._bus is None:
            return
        if not decision.allow:
            event_type = Events.ACCESS_DENIED
        elif decision.is_warning:
            event_type = Events.ACCESS_OVERRIDDEN
        else:
            event_type = Events.ACCESS_GRANTED
        self._bus.emit(
            event_type,
            {
                "actor": decision.actor_id,
                "dimension": decision.dimension.value,
                "reason": decision.reason.value,
            },
        )
