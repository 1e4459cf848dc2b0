"""Named recurring jobs that open or close dimensions unattended.

A :class:`ScheduleJob` says "open (or close) this dimension after ``delay``
ticks, then every ``interval`` ticks". :class:`Scheduler` owns one
:class:`~dimension_gate.core.timers.RecurringTimer` per active job.

Tick semantics:
    Delay and interval are counted in server ticks (20 per second by
    default, see ``tick_seconds``). A delay of ``0`` fires on the next tick,
    not inline during :meth:`Scheduler.register`, so a job registered and
    then cancelled straight away never runs.

Each tick calls :meth:`StateStore.set_open` (which records metrics for a
real change) and publishes ``schedule:fired`` with the ``changed`` flag, plus
``dimension:opened``/``dimension:closed`` when the state actually moved, for
the external broadcaster.

Cancellation:
    :meth:`Scheduler.cancel` and :meth:`Scheduler.cancel_all` join the timer
    threads before returning. After ``cancel_all`` returns no job makes any
    further state store or metrics call.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import cast

from dimension_gate.core.bus import GateBus
from dimension_gate.core.dimensions import Action, Dimension, parse_action, parse_dimension
from dimension_gate.core.errors import ConfigurationError
from dimension_gate.core.events import Events
from dimension_gate.core.state import StateStore
from dimension_gate.core.timers import RecurringTimer

logger = logging.getLogger(__name__)

#: Length of one server tick in seconds (20 ticks per second).
DEFAULT_TICK_SECONDS = 0.05

#: Default interval for a schedule with none configured: one in-game day.
DEFAULT_INTERVAL_TICKS = 24_000


@dataclass(frozen=True)
class ScheduleJob:
    """A named recurring open/close transition.

    ``dimension`` and ``action`` may be given as raw configuration tokens;
    :meth:`Scheduler.register` validates and normalises them.

    Attributes:
        name: Unique key in the scheduler's active-job table.
        dimension: Target dimension (or token such as ``"nether"``).
        action: :class:`Action` (or ``"open"`` / ``"close"``).
        delay: Ticks before the first run.
        interval: Ticks between runs. Must be positive.
        enabled: Disabled jobs are accepted but never started.
    """

    name: str
    dimension: Dimension | str
    action: Action | str
    delay: int = 0
    interval: int = DEFAULT_INTERVAL_TICKS
    enabled: bool = True

    def validated(self) -> ScheduleJob:
        """Return a copy with parsed enums, or raise :exc:`ConfigurationError`."""
        if not self.name:
            raise ConfigurationError("name", self.name)
        try:
            dimension = parse_dimension(self.dimension)
            action = parse_action(self.action)
        except ConfigurationError as exc:
            raise ConfigurationError(exc.field, exc.value, f"schedule {self.name!r}") from None
        if not _is_tick_count(self.delay, minimum=0):
            raise ConfigurationError("delay", self.delay, f"schedule {self.name!r}")
        if not _is_tick_count(self.interval, minimum=1):
            raise ConfigurationError("interval", self.interval, f"schedule {self.name!r}")
        return replace(self, dimension=dimension, action=action)


def _is_tick_count(value: object, *, minimum: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= minimum


class Scheduler:
    """Owns the timers for every registered :class:`ScheduleJob`.

    Args:
        store: State store the jobs mutate.
        bus: Event bus for ``schedule:fired`` and state-change events.
        tick_seconds: Wall-clock length of one tick.
    """

    def __init__(
        self,
        store: StateStore,
        bus: GateBus | None = None,
        *,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
    ) -> None:
        if tick_seconds <= 0:
            raise ValueError(f"tick_seconds must be positive, got {tick_seconds!r}")
        self._store = store
        self._bus = bus
        self._tick_seconds = tick_seconds
        self._jobs: dict[str, tuple[ScheduleJob, RecurringTimer]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, job: ScheduleJob) -> ScheduleJob:
        """Validate and start a job, replacing any job with the same name.

        Returns:
            The normalised job.

        Raises:
            ConfigurationError: If the dimension, action, delay or interval
                is invalid. No timer is started and any existing job with
                that name is left untouched.
        """
        job = job.validated()

        if not job.enabled:
            self.cancel(job.name)
            logger.info("Scheduled task '%s' is disabled; not started", job.name)
            return job

        # Next tick at the earliest, never inline.
        delay_ticks = max(job.delay, 1)
        timer = RecurringTimer(
            f"schedule:{job.name}",
            lambda: self._run_job(job),
            delay=delay_ticks * self._tick_seconds,
            interval=job.interval * self._tick_seconds,
        )

        with self._lock:
            previous = self._jobs.get(job.name)
            self._jobs[job.name] = (job, timer)
            timer.start()
        if previous is not None:
            previous[1].cancel()

        logger.info(
            "Scheduled task '%s' registered: %s %s every %d ticks",
            job.name,
            job.action.value,
            job.dimension.display_name,
            job.interval,
        )
        return job

    def cancel(self, name: str) -> bool:
        """Stop and remove a job. Returns False if no such job was active."""
        with self._lock:
            entry = self._jobs.pop(name, None)
        if entry is None:
            return False
        entry[1].cancel()
        logger.info("Scheduled task '%s' cancelled", name)
        return True

    def cancel_all(self) -> None:
        """Stop every job and wait for all timer threads to finish."""
        with self._lock:
            entries = list(self._jobs.values())
            self._jobs.clear()
        for _job, timer in entries:
            timer.cancel()
        if entries:
            logger.info("Cancelled %d scheduled task(s)", len(entries))

    def active_jobs(self) -> dict[str, ScheduleJob]:
        """Return a copy of the active-job table."""
        with self._lock:
            return {name: job for name, (job, _timer) in self._jobs.items()}

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def _run_job(self, job: ScheduleJob) -> None:
        dimension = cast(Dimension, job.dimension)
        action = cast(Action, job.action)
        changed = self._store.set_open(dimension, action.target_open)
        logger.info(
            "Scheduled %s for %s executed: %s", action.value, dimension.display_name, changed
        )
        if self._bus is None:
            return
        self._bus.emit(
            Events.SCHEDULE_FIRED,
            {
                "job": job.name,
                "dimension": dimension.value,
                "action": action.value,
                "changed": changed,
            },
            source="scheduler",
        )
        if changed:
            event_type = Events.DIMENSION_OPENED if action is Action.OPEN else Events.DIMENSION_CLOSED
            self._bus.emit(event_type, {"dimension": dimension.value, "actor": None}, source="scheduler")
