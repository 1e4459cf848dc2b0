"""Dimension open/closed state store.

:class:`StateStore` holds the single authoritative open/closed flag for each
:class:`~dimension_gate.core.dimensions.Dimension`. Every mutation, whether
it comes from an admin command or a scheduled job, goes through
:meth:`StateStore.set_open`.

Invariants:
    - Every dimension always has exactly one entry; unseen dimensions read
      as open.
    - ``set_open`` with the current value is a no-op: it returns False, does
      not persist and does not record metrics.
    - A real change is persisted synchronously and reported to the metrics
      aggregator before the call returns.

Locking strategy:
    Each dimension has its own :class:`threading.Lock`, so concurrent
    ``set_open`` calls on the same dimension are serialised (``changed`` is
    always computed against a consistent prior value) while different
    dimensions proceed in parallel. The metrics call happens under the
    dimension lock so open/close records arrive in state order.

    Saving is serialised by a separate ``_persist_lock`` and the snapshot is
    taken inside it, so the last write always contains every change that
    completed before it.

Persistence failures:
    A :exc:`~dimension_gate.core.errors.PersistenceError` or :exc:`OSError`
    from the backend is logged and swallowed. Metrics are recorded before
    saving, so a failed save still counts the transition. In-memory state is
    NOT rolled back, so memory and the persisted copy may diverge until the
    next successful save.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol

from dimension_gate.core.dimensions import Dimension
from dimension_gate.core.errors import PersistenceError

if TYPE_CHECKING:
    from dimension_gate.core.metrics import MetricsAggregator

logger = logging.getLogger(__name__)

DimensionState = dict[Dimension, bool]


class StateBackend(Protocol):
    """Persistence collaborator for dimension state."""

    def load(self) -> Mapping[Dimension, bool]:
        """Return persisted flags. Missing dimensions may be omitted."""
        ...

    def save(self, state: Mapping[Dimension, bool]) -> None:
        """Persist every flag. Raise :exc:`PersistenceError` on failure."""
        ...


class StateStore:
    """In-memory dimension flags with load/persist hooks.

    Args:
        backend: Persistence collaborator; ``None`` keeps state in memory only.
        metrics: Aggregator notified of every real open/close transition.
        initial: Starting flags (typically from configuration), applied
            before anything loaded from the backend.
    """

    def __init__(
        self,
        backend: StateBackend | None = None,
        *,
        metrics: MetricsAggregator | None = None,
        initial: Mapping[Dimension, bool] | None = None,
    ) -> None:
        self._backend = backend
        self._metrics = metrics
        self._states: DimensionState = {d: True for d in Dimension}
        if initial:
            self._states.update({d: bool(v) for d, v in initial.items()})
        # Fixed dimension set, so the lock pool never grows.
        self._locks: dict[Dimension, threading.Lock] = {d: threading.Lock() for d in Dimension}
        self._persist_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def is_open(self, dimension: Dimension) -> bool:
        """Return the current flag; True for a dimension never configured."""
        return self._states.get(dimension, True)

    def status_label(self, dimension: Dimension) -> str:
        return "Open" if self.is_open(dimension) else "Closed"

    def snapshot(self) -> DimensionState:
        """Return a copy of every flag."""
        return {d: self.is_open(d) for d in Dimension}

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_open(self, dimension: Dimension, value: bool) -> bool:
        """Set a dimension's flag.

        Args:
            dimension: Dimension to change.
            value: True to open, False to close.

        Returns:
            True if the flag changed (and was persisted and recorded),
            False if it already had that value.
        """
        value = bool(value)
        with self._locks[dimension]:
            if self._states.get(dimension, True) == value:
                return False
            self._states[dimension] = value
            if self._metrics is not None:
                self._metrics.record_transition(dimension, value)
            self._persist()
        logger.info("%s dimension %s", dimension.display_name, "opened" if value else "closed")
        return True

    def open(self, dimension: Dimension) -> bool:
        return self.set_open(dimension, True)

    def close(self, dimension: Dimension) -> bool:
        return self.set_open(dimension, False)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> DimensionState:
        """Overlay persisted flags from the backend onto the current state.

        A failing load is logged and leaves the current (default or
        configured) flags in place. Loading does not record metrics.

        Returns:
            The resulting snapshot.
        """
        if self._backend is None:
            return self.snapshot()
        try:
            persisted = dict(self._backend.load())
        except (PersistenceError, OSError) as exc:
            logger.warning("Failed to load dimension state: %s", exc, exc_info=True)
            return self.snapshot()
        for dimension, value in persisted.items():
            if not isinstance(dimension, Dimension):
                continue
            with self._locks[dimension]:
                self._states[dimension] = bool(value)
        return self.snapshot()

    def _persist(self) -> None:
        if self._backend is None:
            return
        with self._persist_lock:
            state = self.snapshot()
            try:
                self._backend.save(state)
            except (PersistenceError, OSError) as exc:
                logger.warning(
                    "Failed to persist dimension state; in-memory state kept: %s",
                    exc,
                    exc_info=True,
                )
