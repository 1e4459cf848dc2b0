"""Dimension Gate: admission control for named world dimensions.

Gates travel between a fixed set of dimensions (Overworld, Nether, End)
behind a runtime-mutable open/closed flag, a tiered permission policy, a
tick-based auto-toggle scheduler and concurrency-safe usage metrics.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ---------------------------------------------------------------------------
# Package version, read from pyproject.toml via importlib.metadata.
#
# If the package is imported without being installed (for example straight
# from a source checkout), fall back to the version pinned below so the CLI
# can still report something sensible.
# ---------------------------------------------------------------------------
try:
    __version__: str = version("dimension-gate")
except PackageNotFoundError:
    __version__ = "0.3.0"
