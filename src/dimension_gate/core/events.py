"""
Event Type Constants for the Dimension Gate

Events use "domain:action" format in PAST TENSE, because they record facts
about what happened:

    Good: "dimension:opened", "access:denied"
    Bad:  "open_dimension", "deny"

=============================================================================
USAGE
=============================================================================

    from dimension_gate.core.events import Events

    bus.on(Events.DIMENSION_CLOSED, broadcast_closure)

=============================================================================
"""


class Events:
    """
    All event types emitted by the gate core.

    Organized by domain for easy navigation.
    """

    # =========================================================================
    # ACCESS DECISIONS
    # =========================================================================

    ACCESS_GRANTED = "access:granted"
    """
    Emitted when an actor is allowed into a dimension by normal resolution.

    Detail: {
        "actor": str,
        "dimension": str,   # Dimension value, e.g. "nether"
        "reason": str       # DecisionReason value
    }
    """

    ACCESS_OVERRIDDEN = "access:overridden"
    """
    Emitted when an operator passes through a closed dimension. The notifier
    should warn the operator rather than stay silent.

    Detail: {"actor": str, "dimension": str, "reason": "operator_override"}
    """

    ACCESS_DENIED = "access:denied"
    """
    Emitted when an actor is turned away. The notifier renders the denial
    and may alert online admins.

    Detail: {"actor": str, "dimension": str, "reason": str}
    """

    # =========================================================================
    # DIMENSION STATE
    # =========================================================================

    DIMENSION_OPENED = "dimension:opened"
    """
    Emitted after a dimension transitions from closed to open.

    Detail: {"dimension": str, "actor": str | None}
    """

    DIMENSION_CLOSED = "dimension:closed"
    """
    Emitted after a dimension transitions from open to closed.

    Detail: {"dimension": str, "actor": str | None}
    """

    # =========================================================================
    # SCHEDULER
    # =========================================================================

    SCHEDULE_FIRED = "schedule:fired"
    """
    Emitted on every scheduled tick, whether or not the state changed.

    Detail: {
        "job": str,
        "dimension": str,
        "action": str,     # "open" | "close"
        "changed": bool
    }
    """


def get_all_event_types() -> list[str]:
    """Return every event type constant defined on :class:`Events`."""
    return [
        value
        for name, value in vars(Events).items()
        if name.isupper() and isinstance(value, str)
    ]
