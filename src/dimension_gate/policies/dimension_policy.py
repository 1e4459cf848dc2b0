"""Dimension policy loader: initial states and schedule definitions.

The policy file is YAML, laid out like the host plugin configuration it
replaces::

    dimensions:
      overworld:
        open: true
      nether:
        open: false
      end:
        open: true

    schedules:
      nightly-nether-close:
        enabled: true
        dimension: nether
        action: close
        delay_ticks: 0
        interval_ticks: 24000

Schedule entries are returned as unvalidated
:class:`~dimension_gate.core.scheduler.ScheduleJob` objects. Bad dimension or
action tokens are not an error here; they surface as
:exc:`~dimension_gate.core.errors.ConfigurationError` when the job is
registered, so one bad entry never stops the others from loading.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from dimension_gate.core.dimensions import Dimension
from dimension_gate.core.errors import ConfigurationError, PersistenceContext, PersistenceError
from dimension_gate.core.scheduler import DEFAULT_INTERVAL_TICKS, ScheduleJob


@dataclass(slots=True)
class DimensionPolicy:
    """Parsed dimension policy.

    Attributes:
        source: File the policy was read from (None for an in-memory payload).
        initial_states: Dimension → configured open flag (default True).
        schedules: Schedule definitions in file order, unvalidated.
        problems: Human-readable notes about entries that were ignored.
    """

    source: Path | None
    initial_states: dict[Dimension, bool]
    schedules: list[ScheduleJob] = field(default_factory=list)
    problems: list[str] = field(default_factory=list)

    def validate_schedules(self) -> list[tuple[ScheduleJob, ConfigurationError | None]]:
        """Pair each schedule with its validation error (None if valid)."""
        results: list[tuple[ScheduleJob, ConfigurationError | None]] = []
        for job in self.schedules:
            try:
                results.append((job.validated(), None))
            except ConfigurationError as exc:
                results.append((job, exc))
        return results


class DimensionPolicyLoader:
    """Load a :class:`DimensionPolicy` from a YAML file or payload."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def load(self) -> DimensionPolicy:
        """Read and parse the policy file. A missing file yields defaults.

        Raises:
            PersistenceError: If the file exists but is not valid YAML.
        """
        payload = self._read_yaml(self._path)
        policy = parse_policy(payload)
        policy.source = self._path
        return policy

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        """Read a YAML file and return a dict; returns empty dict if missing."""
        if not path.exists():
            return {}
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = yaml.safe_load(handle) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise PersistenceError(
                context=PersistenceContext("policy.load", f"{path}: {exc}"),
                cause=exc,
            ) from exc
        if not isinstance(payload, dict):
            raise PersistenceError(
                context=PersistenceContext("policy.load", f"{path} is not a YAML mapping")
            )
        return payload


def parse_policy(payload: dict[str, Any]) -> DimensionPolicy:
    """Build a :class:`DimensionPolicy` from an already-parsed YAML payload."""
    problems: list[str] = []
    initial_states = _extract_states(payload.get("dimensions") or {}, problems)
    schedules = _extract_schedules(payload.get("schedules") or {}, problems)
    return DimensionPolicy(
        source=None,
        initial_states=initial_states,
        schedules=schedules,
        problems=problems,
    )


def _extract_states(block: Any, problems: list[str]) -> dict[Dimension, bool]:
    states = {d: True for d in Dimension}
    if not isinstance(block, dict):
        problems.append("'dimensions' is not a mapping; using defaults")
        return states
    known = {d.value: d for d in Dimension}
    for name, entry in block.items():
        dimension = known.get(str(name).lower())
        if dimension is None:
            problems.append(f"unknown dimension {name!r} ignored")
            continue
        if isinstance(entry, dict):
            is_open = _as_bool(entry.get("open", True))
            if is_open is None:
                problems.append(
                    f"dimension {name!r} has non-boolean open value {entry.get('open')!r}; "
                    "defaulting to open"
                )
                is_open = True
            states[dimension] = is_open
        else:
            problems.append(f"dimension {name!r} entry is not a mapping; defaulting to open")
    return states


def _extract_schedules(block: Any, problems: list[str]) -> list[ScheduleJob]:
    if not isinstance(block, dict):
        problems.append("'schedules' is not a mapping; no schedules loaded")
        return []
    jobs: list[ScheduleJob] = []
    for name, entry in block.items():
        if not isinstance(entry, dict):
            problems.append(f"schedule {name!r} is not a mapping; skipped")
            continue
        enabled = _as_bool(entry.get("enabled", False))
        if enabled is None:
            problems.append(
                f"schedule {name!r} has non-boolean enabled value {entry.get('enabled')!r}; "
                "treated as disabled"
            )
            enabled = False
        jobs.append(
            ScheduleJob(
                name=str(name),
                dimension=entry.get("dimension"),
                action=entry.get("action"),
                delay=_as_int(entry.get("delay_ticks", 0)),
                interval=_as_int(entry.get("interval_ticks", DEFAULT_INTERVAL_TICKS)),
                enabled=enabled,
            )
        )
    return jobs


_TRUE_WORDS = frozenset({"true", "yes", "on", "1"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0"})


def _as_bool(value: Any) -> bool | None:
    """Accept YAML booleans and their quoted spellings; None for anything else."""
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    return None


def _as_int(value: Any) -> Any:
    """Coerce numeric strings to int; leave anything else for validation to reject."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return value
