"""Persistence collaborators for dimension state and metrics reports.

The core treats durable storage as an injected collaborator. This module
provides the implementations used by the service and the CLI:

- :class:`MemoryStateBackend`: dict-backed, for tests and embedding.
- :class:`YamlStateBackend`: the ``dimensions:`` block of a YAML document.
- :class:`FileReportWriter`: overwrites a text file with the latest report.
- :class:`MemoryReportWriter`: keeps reports in a list, for tests.

State file format
-----------------
::

    dimensions:
      overworld:
        open: true
      nether:
        open: false
      end:
        open: true

Only the ``dimensions`` block is rewritten; any other top-level keys in the
document (for example ``schedules:``) are preserved, so the state file may
be the same file as the dimension configuration.

Concurrency
-----------
Writes take an exclusive ``fcntl.flock`` on a ``<name>.lock`` sidecar file,
write a temporary sibling, then ``os.replace`` it over the target. Readers
never observe a half-written document.

**Platform note:** ``fcntl`` is POSIX-only (Darwin + Linux).

Failure isolation
-----------------
Every filesystem or YAML error is raised as
:exc:`~dimension_gate.core.errors.PersistenceError`. Callers log it and carry
on; it is never fatal.
"""

from __future__ import annotations

import fcntl
import logging
import os
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import yaml

from dimension_gate.core.dimensions import Dimension
from dimension_gate.core.errors import PersistenceContext, PersistenceError

logger = logging.getLogger(__name__)


# ── In-memory ─────────────────────────────────────────────────────────────────


class MemoryStateBackend:
    """Dict-backed state backend.

    Attributes:
        saves: Every state passed to :meth:`save`, in order.
        fail_saves: When True, :meth:`save` raises :exc:`PersistenceError`.
    """

    def __init__(self, initial: Mapping[Dimension, bool] | None = None) -> None:
        self._state: dict[Dimension, bool] = dict(initial or {})
        self._lock = threading.Lock()
        self.saves: list[dict[Dimension, bool]] = []
        self.fail_saves = False

    def load(self) -> dict[Dimension, bool]:
        with self._lock:
            return dict(self._state)

    def save(self, state: Mapping[Dimension, bool]) -> None:
        if self.fail_saves:
            raise PersistenceError(
                context=PersistenceContext("state.save", "memory backend set to fail")
            )
        with self._lock:
            self._state = dict(state)
            self.saves.append(dict(state))


class MemoryReportWriter:
    """Collects written reports in :attr:`reports`."""

    def __init__(self) -> None:
        self.reports: list[str] = []
        self.fail_writes = False

    def write_report(self, report: str) -> None:
        if self.fail_writes:
            raise PersistenceError(
                context=PersistenceContext("metrics.write_report", "memory writer set to fail")
            )
        self.reports.append(report)


# ── YAML state file ───────────────────────────────────────────────────────────


class YamlStateBackend:
    """Persist dimension flags in the ``dimensions:`` block of a YAML file.

    Args:
        path: Target YAML file. Parent directories are created on first save.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def load(self) -> dict[Dimension, bool]:
        """Read persisted flags. A missing file yields an empty mapping.

        Unknown dimension names, entries without an ``open`` key and
        non-boolean ``open`` values are ignored.

        Raises:
            PersistenceError: If the file exists but cannot be read or parsed.
        """
        document = self._read_document("state.load")
        block = document.get("dimensions") or {}
        if not isinstance(block, dict):
            raise PersistenceError(
                context=PersistenceContext("state.load", f"'dimensions' is not a mapping in {self.path}")
            )

        state: dict[Dimension, bool] = {}
        for dimension in Dimension:
            entry = block.get(dimension.value)
            if not isinstance(entry, dict) or "open" not in entry:
                continue
            if not isinstance(entry["open"], bool):
                logger.warning(
                    "state: ignoring non-boolean open value %r for %s in %s",
                    entry["open"],
                    dimension.value,
                    self.path.name,
                )
                continue
            state[dimension] = entry["open"]
        return state

    def save(self, state: Mapping[Dimension, bool]) -> None:
        """Rewrite the ``dimensions`` block with every flag in ``state``.

        Raises:
            PersistenceError: On any filesystem or serialisation failure.
        """
        try:
            with self._locked():
                document = self._read_document("state.save")
                block = document.get("dimensions")
                if not isinstance(block, dict):
                    block = {}
                for dimension, is_open in state.items():
                    entry = block.get(dimension.value)
                    if not isinstance(entry, dict):
                        entry = {}
                    entry["open"] = bool(is_open)
                    block[dimension.value] = entry
                document["dimensions"] = block
                self._write_document(document)
        except (OSError, yaml.YAMLError) as exc:
            raise PersistenceError(
                context=PersistenceContext("state.save", f"{self.path}: {exc}"),
                cause=exc,
            ) from exc
        logger.debug("state: saved %d dimension flag(s) to %s", len(state), self.path.name)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _read_document(self, operation: str) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                document = yaml.safe_load(handle) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise PersistenceError(
                context=PersistenceContext(operation, f"{self.path}: {exc}"),
                cause=exc,
            ) from exc
        if not isinstance(document, dict):
            raise PersistenceError(
                context=PersistenceContext(operation, f"{self.path} is not a YAML mapping")
            )
        return document

    def _write_document(self, document: dict[str, Any]) -> None:
        tmp_path = self.path.with_name(f".{self.path.name}.tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(document, handle, sort_keys=False, default_flow_style=False)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, self.path)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold an exclusive lock on the sidecar ``.lock`` file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = self.path.with_name(f"{self.path.name}.lock")
        with lock_path.open("a", encoding="utf-8") as lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_EX)
            try:
                yield
            finally:
                # Always release the lock, even if the write raised.
                fcntl.flock(lock_file, fcntl.LOCK_UN)


# ── Metrics report file ───────────────────────────────────────────────────────


class FileReportWriter:
    """Overwrite ``path`` with each new metrics report.

    Args:
        path: Report file, e.g. ``data/metrics/statistics.txt``.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def write_report(self, report: str) -> None:
        """Write the report text.

        Raises:
            PersistenceError: If the directory or file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(report, encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(
                context=PersistenceContext("metrics.write_report", f"{self.path}: {exc}"),
                cause=exc,
            ) from exc

    def read_report(self) -> str | None:
        """Return the last written report, or None if none exists yet."""
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")
