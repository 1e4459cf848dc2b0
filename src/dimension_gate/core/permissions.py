"""
Tiered permission resolution for dimension access and gate commands.

This module decides whether an actor may enter a dimension and whether an
actor may run a gate command. It defines:
1. The grant nodes the host permission system understands
2. The capability-query interface the resolver calls back into
3. The ordered access tiers, evaluated with early exit
4. Command permission checks

Access Tiers (evaluated in order, first match wins):
    1. Bypass-all
       a. explicit bypass grant
       b. admin capability, or operator status when
          ``ops_bypass_restrictions`` is enabled
    2. Dimension-specific grant for the requested dimension
    3. The dimension is currently open

    Anything else is a denial. Note that the operator *override* (operators
    walking through a closed dimension with a warning) is NOT a tier here;
    the access gate applies it after the resolver has answered.

Admin Capability:
    ``has_admin`` is an explicit admin grant OR operator status. Operators
    are escalated to admin, so they hold tier 1b whatever
    ``ops_bypass_restrictions`` says.

Every function here is pure with respect to its inputs: no mutation, safe to
call from any number of threads at once.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from dimension_gate.core.dimensions import Dimension

if TYPE_CHECKING:
    from dimension_gate.core.state import StateStore

# ============================================================================
# GRANT NODES
# ============================================================================

ADMIN_GRANT = "dimensionopening.admin"
BYPASS_GRANT = "dimensionopening.bypass"


def dimension_grant(dimension: Dimension) -> str:
    """Grant node for entering one dimension, e.g. ``dimensionopening.access.nether``."""
    return f"dimensionopening.access.{dimension.value}"


class CommandKind(Enum):
    """
    Gate commands that can be individually granted.

    Admins may run every kind; everyone else needs the matching grant node.
    """

    OPEN = "open"
    CLOSE = "close"
    STATUS = "status"
    GUI = "gui"
    SCHEDULE = "schedule"

    @property
    def grant(self) -> str:
        """Grant node, e.g. ``dimensionopening.command.open``."""
        return f"dimensionopening.command.{self.value}"


# ============================================================================
# CAPABILITY INTERFACE
# ============================================================================


@runtime_checkable
class Actor(Protocol):
    """
    Capability queries the resolver calls back into.

    The core never stores or derives these; the host supplies an object
    answering them for the actor in question.
    """

    @property
    def actor_id(self) -> str: ...

    def has_bypass_grant(self) -> bool: ...

    def has_dimension_grant(self, dimension: Dimension) -> bool: ...

    def has_command_grant(self, kind: CommandKind) -> bool: ...

    def is_operator(self) -> bool: ...

    def has_explicit_admin(self) -> bool: ...


@dataclass(frozen=True)
class ActorCapabilities:
    """
    Plain value implementation of :class:`Actor`.

    Used by the CLI and tests, and by hosts whose permission data is already
    materialised as grant node strings (see :meth:`from_grants`).

    Attributes:
        actor_id: Stable actor identifier (player name or UUID).
        operator: Whether the actor has server operator status.
        grants: Grant node strings held by the actor.
    """

    actor_id: str
    operator: bool = False
    grants: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_grants(
        cls, actor_id: str, grants: Iterable[str] = (), *, operator: bool = False
    ) -> ActorCapabilities:
        return cls(
            actor_id=actor_id,
            operator=operator,
            grants=frozenset(g.strip().lower() for g in grants),
        )

    def has_bypass_grant(self) -> bool:
        return BYPASS_GRANT in self.grants

    def has_dimension_grant(self, dimension: Dimension) -> bool:
        return dimension_grant(dimension) in self.grants

    def has_command_grant(self, kind: CommandKind) -> bool:
        return kind.grant in self.grants

    def is_operator(self) -> bool:
        return self.operator

    def has_explicit_admin(self) -> bool:
        return ADMIN_GRANT in self.grants


# ============================================================================
# ACCESS TIERS
# ============================================================================


class AccessTier(Enum):
    """Which rule admitted an actor, in evaluation order."""

    BYPASS_GRANT = "bypass_grant"
    ADMIN = "admin"
    DIMENSION_GRANT = "dimension_grant"
    OPEN = "open"

    @property
    def is_bypass(self) -> bool:
        return self in _BYPASS_TIERS


_BYPASS_TIERS = frozenset({AccessTier.BYPASS_GRANT, AccessTier.ADMIN})

# (tier, predicate) pairs; a predicate takes (resolver, actor, dimension)
TierPredicate = Callable[["PermissionResolver", Actor, Dimension], bool]


def _has_bypass_grant(resolver: PermissionResolver, actor: Actor, dimension: Dimension) -> bool:
    return actor.has_bypass_grant()


def _has_admin_or_operator_bypass(
    resolver: PermissionResolver, actor: Actor, dimension: Dimension
) -> bool:
    return resolver.has_admin(actor) or (resolver.ops_bypass_restrictions and actor.is_operator())


def _has_dimension_grant(resolver: PermissionResolver, actor: Actor, dimension: Dimension) -> bool:
    return actor.has_dimension_grant(dimension)


def _dimension_open(resolver: PermissionResolver, actor: Actor, dimension: Dimension) -> bool:
    return resolver.store.is_open(dimension)


ACCESS_TIERS: tuple[tuple[AccessTier, TierPredicate], ...] = (
    (AccessTier.BYPASS_GRANT, _has_bypass_grant),
    (AccessTier.ADMIN, _has_admin_or_operator_bypass),
    (AccessTier.DIMENSION_GRANT, _has_dimension_grant),
    (AccessTier.OPEN, _dimension_open),
)


# ============================================================================
# RESOLVER
# ============================================================================


class PermissionResolver:
    """
    Pure access and command decisions over actor capabilities and state.

    Args:
        store: Read for tier 3 (is the dimension open?). Never mutated.
        ops_bypass_restrictions: Whether operator status alone bypasses
            dimension restrictions. Operators already hold admin capability,
            so turning this off does not lock them out.
    """

    def __init__(self, store: StateStore, *, ops_bypass_restrictions: bool = True) -> None:
        self.store = store
        self.ops_bypass_restrictions = ops_bypass_restrictions

    def resolve(self, actor: Actor, dimension: Dimension) -> AccessTier | None:
        """
        Return the first tier that admits the actor, or None for a denial.

        Example:
            >>> resolver.resolve(player, Dimension.NETHER)  # nether open
            <AccessTier.OPEN: 'open'>
        """
        for tier, predicate in ACCESS_TIERS:
            if predicate(self, actor, dimension):
                return tier
        return None

    def can_access(self, actor: Actor, dimension: Dimension) -> bool:
        """True if any access tier admits the actor."""
        return self.resolve(actor, dimension) is not None

    def can_bypass(self, actor: Actor) -> bool:
        """True if the actor ignores closed state in every dimension (tier 1)."""
        return (
            actor.has_bypass_grant()
            or self.has_admin(actor)
            or (self.ops_bypass_restrictions and actor.is_operator())
        )

    def has_admin(self, actor: Actor) -> bool:
        """Explicit admin grant OR operator status."""
        return actor.has_explicit_admin() or actor.is_operator()

    def can_use_command(self, actor: Actor, kind: CommandKind) -> bool:
        """
        Check whether an actor may run a gate command.

        Admin capability (which includes operators) allows every kind;
        otherwise the specific command grant is required.
        """
        if self.has_admin(actor):
            return True
        return actor.has_command_grant(kind)

    def explain(self, actor: Actor, dimension: Dimension) -> str:
        """Human-readable explanation of the actor's access to a dimension."""
        tier = self.resolve(actor, dimension)
        name = dimension.display_name
        if tier is not None and tier.is_bypass:
            return "You have bypass permissions for all dimensions."
        if tier is AccessTier.DIMENSION_GRANT:
            return f"You have specific access to the {name} dimension."
        if tier is AccessTier.OPEN:
            return f"The {name} dimension is currently open to all players."
        return (
            f"The {name} dimension is closed. You need the "
            f"'{dimension_grant(dimension)}' permission or admin access."
        )
