"""
Tests for tiered permission resolution.

Covers the access tiers in order (bypass grant, admin or operator,
dimension grant, open dimension), the ops_bypass_restrictions switch, and
command permission checks.
"""

import pytest

from dimension_gate.core.dimensions import Dimension
from dimension_gate.core.permissions import (
    ADMIN_GRANT,
    BYPASS_GRANT,
    AccessTier,
    Actor,
    ActorCapabilities,
    CommandKind,
    PermissionResolver,
    dimension_grant,
)
from dimension_gate.core.state import StateStore

# ============================================================================
# GRANT NODES
# ============================================================================


@pytest.mark.unit
def test_grant_node_names():
    assert ADMIN_GRANT == "dimensionopening.admin"
    assert BYPASS_GRANT == "dimensionopening.bypass"
    assert dimension_grant(Dimension.NETHER) == "dimensionopening.access.nether"
    assert CommandKind.SCHEDULE.grant == "dimensionopening.command.schedule"


@pytest.mark.unit
def test_from_grants_normalises_case():
    actor = ActorCapabilities.from_grants("x", [" DimensionOpening.Bypass "])
    assert actor.has_bypass_grant() is True


@pytest.mark.unit
def test_actor_capabilities_satisfy_protocol(player):
    assert isinstance(player, Actor)


# ============================================================================
# ACCESS TIERS
# ============================================================================


class TestResolve:
    """Tests for PermissionResolver.resolve()."""

    @pytest.mark.unit
    def test_open_dimension_admits_anyone(self, resolver, player):
        assert resolver.resolve(player, Dimension.NETHER) is AccessTier.OPEN
        assert resolver.can_access(player, Dimension.NETHER) is True

    @pytest.mark.unit
    def test_closed_dimension_denies_plain_player(self, store, resolver, player):
        store.close(Dimension.NETHER)

        assert resolver.resolve(player, Dimension.NETHER) is None
        assert resolver.can_access(player, Dimension.NETHER) is False

    @pytest.mark.unit
    def test_dimension_grant_is_specific(self, store, resolver, nether_visitor):
        store.close(Dimension.NETHER)
        store.close(Dimension.END)

        assert resolver.resolve(nether_visitor, Dimension.NETHER) is AccessTier.DIMENSION_GRANT
        assert resolver.resolve(nether_visitor, Dimension.END) is None

    @pytest.mark.unit
    def test_bypass_grant_wins_first(self, store, resolver):
        store.close(Dimension.END)
        actor = ActorCapabilities.from_grants(
            "x", [BYPASS_GRANT, ADMIN_GRANT, dimension_grant(Dimension.END)], operator=True
        )

        assert resolver.resolve(actor, Dimension.END) is AccessTier.BYPASS_GRANT

    @pytest.mark.unit
    def test_admin_before_operator(self, store, resolver):
        store.close(Dimension.END)
        actor = ActorCapabilities.from_grants("x", [ADMIN_GRANT], operator=True)

        assert resolver.resolve(actor, Dimension.END) is AccessTier.ADMIN

    @pytest.mark.unit
    def test_operator_is_admin_even_when_open(self, resolver, operator):
        # Tier 1 is checked before the open state
        assert resolver.resolve(operator, Dimension.NETHER) is AccessTier.ADMIN

    @pytest.mark.unit
    def test_operator_without_ops_bypass(self, operator):
        store = StateStore(initial={Dimension.NETHER: False})
        resolver = PermissionResolver(store, ops_bypass_restrictions=False)

        # Admin escalation still covers operators
        assert resolver.has_admin(operator) is True
        assert resolver.resolve(operator, Dimension.NETHER) is AccessTier.ADMIN
        assert resolver.can_access(operator, Dimension.NETHER) is True
        assert resolver.can_bypass(operator) is True
        assert resolver.explain(operator, Dimension.NETHER) == (
            "You have bypass permissions for all dimensions."
        )

    @pytest.mark.unit
    def test_resolver_reads_live_state(self, store, resolver, player):
        store.close(Dimension.END)
        assert resolver.can_access(player, Dimension.END) is False
        store.open(Dimension.END)
        assert resolver.can_access(player, Dimension.END) is True


class TestBypassAndAdmin:
    """Tests for can_bypass() and has_admin()."""

    @pytest.mark.unit
    def test_can_bypass(self, resolver, player, bypasser, admin, operator, nether_visitor):
        assert resolver.can_bypass(bypasser) is True
        assert resolver.can_bypass(admin) is True
        assert resolver.can_bypass(operator) is True
        assert resolver.can_bypass(player) is False
        assert resolver.can_bypass(nether_visitor) is False

    @pytest.mark.unit
    def test_operator_escalates_to_admin(self, resolver, operator, admin, bypasser):
        assert resolver.has_admin(operator) is True
        assert resolver.has_admin(admin) is True
        assert resolver.has_admin(bypasser) is False


class TestCommands:
    """Tests for can_use_command()."""

    @pytest.mark.unit
    @pytest.mark.parametrize("kind", list(CommandKind))
    def test_admin_may_run_everything(self, resolver, admin, operator, kind):
        assert resolver.can_use_command(admin, kind) is True
        assert resolver.can_use_command(operator, kind) is True

    @pytest.mark.unit
    def test_specific_grant(self, resolver, opener):
        assert resolver.can_use_command(opener, CommandKind.OPEN) is True
        assert resolver.can_use_command(opener, CommandKind.CLOSE) is False

    @pytest.mark.unit
    def test_plain_player_may_run_nothing(self, resolver, player):
        assert not any(resolver.can_use_command(player, k) for k in CommandKind)


class TestExplain:
    """Tests for explain()."""

    @pytest.mark.unit
    def test_messages(self, store, resolver, player, bypasser, nether_visitor):
        assert "bypass permissions" in resolver.explain(bypasser, Dimension.END)
        assert "currently open" in resolver.explain(player, Dimension.END)

        store.close(Dimension.NETHER)
        assert "specific access" in resolver.explain(nether_visitor, Dimension.NETHER)
        denied = resolver.explain(player, Dimension.NETHER)
        assert "closed" in denied
        assert "dimensionopening.access.nether" in denied
