"""Concurrency-safe usage metrics for dimension transitions and access.

:class:`MetricsAggregator` observes every open/close transition and every
access decision exactly once. Recording methods are fire-and-forget: they
never raise and never block beyond a short critical section.

Counters
--------
Per dimension:
    - open count, close count
    - cumulative open duration ("uptime"), accrued at close time against the
      last recorded open. A close with no matching open adds nothing.

Per (actor, dimension):
    - access attempts (every evaluation, including trivially allowed ones)
    - access denials

Locking strategy
----------------
Counters are split into two families, each guarded by its own
:class:`threading.Lock`: dimension counters (open/close/uptime) and actor
counters (attempts/denials). Increments are read-merge-write under the
family lock, so concurrent callers never lose an update; snapshots copy each
family under its lock and never hand out live dictionaries.

Flushing
--------
:meth:`MetricsAggregator.flush` renders the current snapshot as a text
report and hands it to the injected report writer. A background
:class:`~dimension_gate.core.timers.RecurringTimer` calls it every
``flush_interval`` seconds once :meth:`MetricsAggregator.start` is called.
Write failures are logged and dropped.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from dimension_gate.core.dimensions import Dimension
from dimension_gate.core.errors import PersistenceError
from dimension_gate.core.timers import RecurringTimer

logger = logging.getLogger(__name__)

#: Default flush period: five minutes of wall clock.
DEFAULT_FLUSH_INTERVAL_SECONDS = 300.0

ActorKey = tuple[str, Dimension]


class ReportWriter(Protocol):
    """Persistence collaborator for the rendered metrics report."""

    def write_report(self, report: str) -> None:
        """Persist the report text. Raise :exc:`PersistenceError` on failure."""
        ...


# ── Snapshot ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time copy of every counter.

    The dictionaries are private copies taken at snapshot time; mutating
    them does not affect the aggregator.

    Attributes:
        open_counts:    Dimension → number of recorded opens.
        close_counts:   Dimension → number of recorded closes.
        uptime_seconds: Dimension → cumulative open duration in seconds.
        attempts:       (actor_id, Dimension) → access attempts.
        denied:         (actor_id, Dimension) → access denials.
    """

    open_counts: dict[Dimension, int] = field(default_factory=dict)
    close_counts: dict[Dimension, int] = field(default_factory=dict)
    uptime_seconds: dict[Dimension, float] = field(default_factory=dict)
    attempts: dict[ActorKey, int] = field(default_factory=dict)
    denied: dict[ActorKey, int] = field(default_factory=dict)

    def open_count(self, dimension: Dimension) -> int:
        return self.open_counts.get(dimension, 0)

    def close_count(self, dimension: Dimension) -> int:
        return self.close_counts.get(dimension, 0)

    def uptime(self, dimension: Dimension) -> float:
        return self.uptime_seconds.get(dimension, 0.0)

    def attempts_for(self, actor_id: str, dimension: Dimension) -> int:
        return self.attempts.get((actor_id, dimension), 0)

    def denied_for(self, actor_id: str, dimension: Dimension) -> int:
        return self.denied.get((actor_id, dimension), 0)

    def attempt_totals_by_actor(self) -> dict[str, int]:
        """Attempts summed across dimensions, keyed by actor."""
        return _totals_by_actor(self.attempts)

    def denied_totals_by_actor(self) -> dict[str, int]:
        """Denials summed across dimensions, keyed by actor."""
        return _totals_by_actor(self.denied)


def _totals_by_actor(counts: dict[ActorKey, int]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for (actor_id, _dimension), count in counts.items():
        totals[actor_id] = totals.get(actor_id, 0) + count
    return totals


# ── Aggregator ────────────────────────────────────────────────────────────────


class MetricsAggregator:
    """Thread-safe counters and uptime timers for the gate.

    Args:
        report_writer: Where :meth:`flush` sends the rendered report. ``None``
            makes flushing a no-op (useful for embedded or CLI use).
        flush_interval: Seconds between background flushes.
        clock: Monotonic time source in seconds, injectable for tests.
    """

    def __init__(
        self,
        report_writer: ReportWriter | None = None,
        *,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._report_writer = report_writer
        self._flush_interval = flush_interval
        self._clock = clock

        self._dimension_lock = threading.Lock()
        self._open_counts: dict[Dimension, int] = {}
        self._close_counts: dict[Dimension, int] = {}
        self._uptime: dict[Dimension, float] = {}
        self._last_opened: dict[Dimension, float] = {}

        self._actor_lock = threading.Lock()
        self._attempts: dict[ActorKey, int] = {}
        self._denied: dict[ActorKey, int] = {}

        self._flush_timer: RecurringTimer | None = None
        self._timer_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_open(self, dimension: Dimension) -> None:
        """Count an open and remember when it happened for uptime accrual."""
        now = self._clock()
        with self._dimension_lock:
            self._open_counts[dimension] = self._open_counts.get(dimension, 0) + 1
            self._last_opened[dimension] = now

    def record_close(self, dimension: Dimension) -> None:
        """Count a close and accrue uptime since the last unmatched open.

        With no recorded open the uptime is left untouched. The open
        timestamp is consumed, so a second close without a reopen adds
        nothing.
        """
        now = self._clock()
        with self._dimension_lock:
            self._close_counts[dimension] = self._close_counts.get(dimension, 0) + 1
            opened_at = self._last_opened.pop(dimension, None)
            if opened_at is not None:
                elapsed = max(0.0, now - opened_at)
                self._uptime[dimension] = self._uptime.get(dimension, 0.0) + elapsed

    def record_transition(self, dimension: Dimension, is_open: bool) -> None:
        """Dispatch to :meth:`record_open` or :meth:`record_close`."""
        if is_open:
            self.record_open(dimension)
        else:
            self.record_close(dimension)

    def record_attempt(self, actor_id: str, dimension: Dimension) -> None:
        key = (actor_id, dimension)
        with self._actor_lock:
            self._attempts[key] = self._attempts.get(key, 0) + 1

    def record_denied(self, actor_id: str, dimension: Dimension) -> None:
        key = (actor_id, dimension)
        with self._actor_lock:
            self._denied[key] = self._denied.get(key, 0) + 1

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def snapshot(self) -> MetricsSnapshot:
        """Return a point-in-time copy of every counter."""
        with self._dimension_lock:
            open_counts = dict(self._open_counts)
            close_counts = dict(self._close_counts)
            uptime = dict(self._uptime)
        with self._actor_lock:
            attempts = dict(self._attempts)
            denied = dict(self._denied)
        return MetricsSnapshot(
            open_counts=open_counts,
            close_counts=close_counts,
            uptime_seconds=uptime,
            attempts=attempts,
            denied=denied,
        )

    def reset(self) -> None:
        """Clear every counter, including pending open timestamps."""
        with self._dimension_lock:
            self._open_counts.clear()
            self._close_counts.clear()
            self._uptime.clear()
            self._last_opened.clear()
        with self._actor_lock:
            self._attempts.clear()
            self._denied.clear()

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    def flush(self) -> bool:
        """Write the rendered report through the report writer.

        Returns:
            True if a report was written, False if there is no writer or
            the write failed. Failures are logged, never raised.
        """
        if self._report_writer is None:
            return False
        report = render_report(self.snapshot())
        try:
            self._report_writer.write_report(report)
        except (PersistenceError, OSError) as exc:
            logger.warning("Failed to save metrics: %s", exc, exc_info=True)
            return False
        return True

    def start(self) -> None:
        """Start the background flush timer. Calling twice is a no-op."""
        with self._timer_lock:
            if self._flush_timer is not None:
                return
            self._flush_timer = RecurringTimer(
                "metrics-flush",
                self.flush,
                delay=self._flush_interval,
                interval=self._flush_interval,
            )
            self._flush_timer.start()
        logger.info("Metrics flush scheduled every %.0f seconds", self._flush_interval)

    def stop(self, *, final_flush: bool = True) -> None:
        """Stop the flush timer (joining it) and optionally flush once more."""
        with self._timer_lock:
            timer, self._flush_timer = self._flush_timer, None
        if timer is not None:
            timer.cancel()
        if final_flush:
            self.flush()


# ── Report rendering ──────────────────────────────────────────────────────────


def format_uptime(seconds: float) -> str:
    """Render a duration compactly, e.g. ``"1d 2h 5m"`` or ``"42s"``."""
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    days, hours = divmod(hours, 24)
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def render_report(snapshot: MetricsSnapshot, generated_at: datetime | None = None) -> str:
    """Render a snapshot as the plain-text statistics report.

    Dimensions are listed in declaration order and actors alphabetically so
    the output is stable between flushes.
    """
    generated_at = generated_at or datetime.now()
    lines = [
        "=== Dimension Gate Metrics ===",
        f"Generated: {generated_at:%Y-%m-%d %H:%M:%S}",
        "",
        "Dimension Open Count:",
    ]
    lines += [f"  {d.value}: {snapshot.open_counts[d]}" for d in Dimension if d in snapshot.open_counts]

    lines += ["", "Dimension Close Count:"]
    lines += [f"  {d.value}: {snapshot.close_counts[d]}" for d in Dimension if d in snapshot.close_counts]

    lines += ["", "Dimension Uptime:"]
    lines += [
        f"  {d.value}: {format_uptime(snapshot.uptime_seconds[d])}"
        for d in Dimension
        if d in snapshot.uptime_seconds
    ]

    lines += ["", "Player Access Attempts:"]
    lines += [f"  {actor}: {n}" for actor, n in sorted(snapshot.attempt_totals_by_actor().items())]

    lines += ["", "Player Access Denied:"]
    lines += [f"  {actor}: {n}" for actor, n in sorted(snapshot.denied_totals_by_actor().items())]

    return "\n".join(lines) + "\n"
