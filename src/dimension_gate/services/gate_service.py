"""
Wiring for a running dimension gate.

Why this module exists:
    The core components are plain objects passed to each other. Hosts and
    the CLI both need the same assembly (state store on a backend, resolver
    reading that store, gate recording into metrics, scheduler publishing on
    the bus) plus the same startup and shutdown ordering. This service owns
    that assembly so every caller gets one canonical lifecycle.

Lifecycle:
    start()     load persisted state, register configured schedules, start
                the metrics flush timer
    shutdown()  cancel every schedule (joining timer threads), stop the
                flush timer and write a final report

Shutdown is idempotent. Once it returns no timer thread makes any further
state store or metrics call.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from dimension_gate.config import GateConfig
from dimension_gate.core.bus import GateBus
from dimension_gate.core.dimensions import Dimension
from dimension_gate.core.errors import ConfigurationError, PersistenceError
from dimension_gate.core.gate import AccessGate
from dimension_gate.core.metrics import (
    DEFAULT_FLUSH_INTERVAL_SECONDS,
    MetricsAggregator,
    ReportWriter,
)
from dimension_gate.core.permissions import PermissionResolver
from dimension_gate.core.scheduler import DEFAULT_TICK_SECONDS, ScheduleJob, Scheduler
from dimension_gate.core.state import StateBackend, StateStore
from dimension_gate.policies import DimensionPolicy, DimensionPolicyLoader, parse_policy
from dimension_gate.storage import FileReportWriter, YamlStateBackend

logger = logging.getLogger(__name__)


class DimensionGateService:
    """
    Owns one fully wired set of gate components.

    Attributes:
        policy: Dimension policy supplying initial states and schedules.
        bus: Event bus shared by the gate and the scheduler.
        metrics: Metrics aggregator.
        store: Dimension state store.
        resolver: Permission resolver over ``store``.
        scheduler: Schedule runner mutating ``store``.
        gate: Access gate used for evaluations and admin toggles.
    """

    def __init__(
        self,
        *,
        state_backend: StateBackend | None = None,
        report_writer: ReportWriter | None = None,
        policy: DimensionPolicy | None = None,
        ops_bypass_restrictions: bool = True,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy or parse_policy({})
        self.bus = GateBus()
        self.metrics = MetricsAggregator(report_writer, flush_interval=flush_interval, clock=clock)
        self.store = StateStore(
            state_backend,
            metrics=self.metrics,
            initial=self.policy.initial_states,
        )
        self.resolver = PermissionResolver(
            self.store, ops_bypass_restrictions=ops_bypass_restrictions
        )
        self.scheduler = Scheduler(self.store, self.bus, tick_seconds=tick_seconds)
        self.gate = AccessGate(self.store, self.resolver, self.metrics, self.bus)

        self._lifecycle_lock = threading.Lock()
        self._started = False
        self._stopped = False

    @classmethod
    def from_config(cls, cfg: GateConfig) -> DimensionGateService:
        """
        Build a service from loaded configuration.

        A policy file that cannot be parsed is logged and replaced by the
        defaults (every dimension open, no schedules).
        """
        try:
            policy = DimensionPolicyLoader(cfg.gate.dimensions_path).load()
        except PersistenceError as exc:
            logger.warning("Failed to load dimension policy, using defaults: %s", exc)
            policy = parse_policy({})
        for problem in policy.problems:
            logger.warning("Dimension policy: %s", problem)

        return cls(
            state_backend=YamlStateBackend(cfg.storage.absolute_state_path),
            report_writer=FileReportWriter(cfg.metrics.absolute_report_path),
            policy=policy,
            ops_bypass_restrictions=cfg.gate.ops_bypass_restrictions,
            tick_seconds=cfg.schedule.tick_seconds,
            flush_interval=cfg.metrics.flush_interval_seconds,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load_state(self) -> dict[Dimension, bool]:
        """Overlay persisted flags onto the configured ones."""
        return self.store.load()

    def start(self) -> list[ScheduleJob]:
        """
        Load state, register enabled schedules and start the flush timer.

        A schedule with a bad dimension, action or timing is logged and
        skipped; the rest still start.

        Returns:
            The jobs that were registered and enabled.
        """
        with self._lifecycle_lock:
            if self._started:
                return list(self.scheduler.active_jobs().values())
            self._started = True

        self.load_state()
        registered: list[ScheduleJob] = []
        for job in self.policy.schedules:
            try:
                job = self.scheduler.register(job)
            except ConfigurationError as exc:
                logger.warning("Skipping scheduled task '%s': %s", job.name, exc)
                continue
            if job.enabled:
                registered.append(job)
        self.metrics.start()
        logger.info("Dimension gate started with %d scheduled task(s)", len(registered))
        return registered

    def shutdown(self) -> None:
        """Cancel schedules and flush metrics. Safe to call more than once."""
        with self._lifecycle_lock:
            if self._stopped:
                return
            self._stopped = True
        self.scheduler.cancel_all()
        self.metrics.stop()
        logger.info("Dimension gate stopped")

    def __enter__(self) -> DimensionGateService:
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
        return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def status(self) -> dict[Dimension, str]:
        """Map each dimension to ``"Open"`` or ``"Closed"``."""
        return {d: self.store.status_label(d) for d in Dimension}
