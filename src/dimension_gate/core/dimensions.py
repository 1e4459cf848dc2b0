"""
Dimension and action vocabulary.

This module defines the closed set of dimensions the gate controls and the
two transition actions a schedule or command can request. It also owns the
token parsing used by configuration files and the CLI, so there is exactly
one place that decides what ``"world"`` or ``"the_end"`` means.

Dimensions (fixed, closed set):
    OVERWORLD: The surface world. Tokens: ``world``, ``overworld``, ``normal``
    NETHER:    The nether. Tokens: ``nether``, ``the_nether``
    END:       The end. Tokens: ``end``, ``the_end``

Enum values are the lowercase names used as metric keys and in persisted
state files.
"""

from __future__ import annotations

from enum import Enum

from dimension_gate.core.errors import ConfigurationError

# ============================================================================
# DIMENSIONS
# ============================================================================


class Dimension(Enum):
    """
    The dimensions subject to open/closed admission control.

    Members are immutable and hashable, and are used as map keys by every
    component (state store, metrics, permission grants).
    """

    OVERWORLD = "overworld"
    NETHER = "nether"
    END = "end"

    @property
    def display_name(self) -> str:
        """User-facing name, e.g. ``"Nether"``."""
        return _DISPLAY_NAMES[self]

    def __str__(self) -> str:
        return self.value


_DISPLAY_NAMES: dict[Dimension, str] = {
    Dimension.OVERWORLD: "Overworld",
    Dimension.NETHER: "Nether",
    Dimension.END: "End",
}

# Accepted spellings, lowercase. "world" and "normal" match the host
# server's names for the overworld environment.
_DIMENSION_TOKENS: dict[str, Dimension] = {
    "world": Dimension.OVERWORLD,
    "overworld": Dimension.OVERWORLD,
    "normal": Dimension.OVERWORLD,
    "nether": Dimension.NETHER,
    "the_nether": Dimension.NETHER,
    "end": Dimension.END,
    "the_end": Dimension.END,
}


# ============================================================================
# ACTIONS
# ============================================================================


class Action(Enum):
    """A requested state transition for a dimension."""

    OPEN = "open"
    CLOSE = "close"

    @property
    def target_open(self) -> bool:
        """The open/closed value this action drives the dimension to."""
        return self is Action.OPEN


# ============================================================================
# PARSING
# ============================================================================


def parse_dimension(token: Dimension | str | None) -> Dimension:
    """
    Resolve a dimension token to a :class:`Dimension`.

    Args:
        token: A Dimension (returned unchanged) or a case-insensitive token
               such as ``"world"``, ``"Nether"`` or ``"the_end"``.

    Returns:
        The matching Dimension.

    Raises:
        ConfigurationError: If the token is missing or not recognised.

    Example:
        >>> parse_dimension("World")
        <Dimension.OVERWORLD: 'overworld'>
    """
    if isinstance(token, Dimension):
        return token
    if not isinstance(token, str):
        raise ConfigurationError("dimension", token)
    dimension = _DIMENSION_TOKENS.get(token.strip().lower())
    if dimension is None:
        raise ConfigurationError("dimension", token)
    return dimension


def parse_action(token: Action | str | None) -> Action:
    """
    Resolve an action token (``"open"`` / ``"close"``) to an :class:`Action`.

    Raises:
        ConfigurationError: If the token is missing or not recognised.
    """
    if isinstance(token, Action):
        return token
    if not isinstance(token, str):
        raise ConfigurationError("action", token)
    try:
        return Action(token.strip().lower())
    except ValueError:
        raise ConfigurationError("action", token) from None


def dimension_tokens() -> list[str]:
    """Return every accepted dimension token, sorted (for help text)."""
    return sorted(_DIMENSION_TOKENS)
