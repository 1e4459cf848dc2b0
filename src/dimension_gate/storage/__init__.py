"""Persistence collaborators for dimension state and metrics reports.

Public surface
--------------
- :class:`MemoryStateBackend` / :class:`YamlStateBackend`: state backends
  satisfying :class:`~dimension_gate.core.state.StateBackend`.
- :class:`MemoryReportWriter` / :class:`FileReportWriter`: report writers
  satisfying :class:`~dimension_gate.core.metrics.ReportWriter`.

All of them raise :exc:`~dimension_gate.core.errors.PersistenceError` on
failure; none of them is ever fatal to the caller.
"""

from dimension_gate.storage.backends import (
    FileReportWriter,
    MemoryReportWriter,
    MemoryStateBackend,
    YamlStateBackend,
)

__all__ = [
    "FileReportWriter",
    "MemoryReportWriter",
    "MemoryStateBackend",
    "YamlStateBackend",
]
