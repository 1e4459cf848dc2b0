"""Typed exceptions for the admission-control core.

The hierarchy is small. Nothing raised here is fatal to the
process:

    - :exc:`ConfigurationError` marks a single bad schedule or command
      definition. The caller logs it and skips that one entry.
    - :exc:`PersistenceError` marks a failed state save/load or metrics
      report write. The caller logs it; in-memory state stays authoritative.

"Access denied" and "already in the requested state" are *outcomes*, not
failures, and have no exception type.
"""

from __future__ import annotations

from dataclasses import dataclass


class GateError(RuntimeError):
    """Base exception for dimension gate failures."""


class ConfigurationError(GateError, ValueError):
    """Raised when a dimension, action or schedule field is not recognised.

    Args:
        field: Name of the offending field (for example ``"dimension"``).
        value: The rejected raw value.
        details: Optional extra context, such as the schedule name.
    """

    def __init__(self, field: str, value: object, details: str | None = None) -> None:
        message = f"Invalid {field}: {value!r}"
        if details:
            message = f"{message} ({details})"
        super().__init__(message)
        self.field = field
        self.value = value
        self.details = details


@dataclass(slots=True)
class PersistenceContext:
    """Structured operation metadata carried by :exc:`PersistenceError`.

    Attributes:
        operation: Stable operation identifier (for example
            ``"state.save"`` or ``"metrics.write_report"``).
        details: Optional human-readable context for logs and debugging.
    """

    operation: str
    details: str | None = None


class PersistenceError(GateError):
    """Raised by persistence collaborators when a read or write fails.

    Args:
        context: Structured operation metadata.
        cause: Optional underlying exception.
    """

    def __init__(
        self,
        *,
        context: PersistenceContext,
        cause: Exception | None = None,
    ) -> None:
        message = context.operation
        if context.details:
            message = f"{message}: {context.details}"
        super().__init__(message)
        self.context = context
        self.cause = cause
