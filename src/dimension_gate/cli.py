"""
Command-line interface for Dimension Gate.

Provides console commands for operating the gate outside a game host:
- status: Show whether each dimension is open or closed
- open / close: Change a dimension's state (as the console)
- schedules: List configured schedules and whether they are valid
- run: Start the gate with its schedules until interrupted
- report: Print the current metrics report

Usage:
    dimension-gate status [--verbose]
    dimension-gate open nether
    dimension-gate close the_end
    dimension-gate schedules
    dimension-gate run
    dimension-gate report

Commands other than ``run`` are one-shot: ``open`` and ``close`` change the
persisted state but are not counted in the metrics report, which belongs to
the long-running ``run`` process.

Environment Variables:
    GATE_STATE_PATH: Where dimension state is persisted
    GATE_DIMENSIONS_FILE: Dimension policy YAML (initial states and schedules)
    GATE_LOG_LEVEL: Log level for commands that log (default: INFO)
"""

import argparse
import json
import logging
import sys
import time

from dimension_gate import __version__
from dimension_gate.config import GateConfig, LoggingSettings, load_config, print_config_summary
from dimension_gate.core.dimensions import (
    Dimension,
    dimension_tokens,
    parse_action,
    parse_dimension,
)
from dimension_gate.core.errors import ConfigurationError
from dimension_gate.core.metrics import MetricsSnapshot, render_report
from dimension_gate.services import DimensionGateService
from dimension_gate.storage import FileReportWriter

# ============================================================================
# LOGGING
# ============================================================================

_FORMATS = {
    "simple": "%(levelname)s: %(message)s",
    "detailed": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(settings: LoggingSettings) -> None:
    """
    Apply the configured level and format to the root logger.

    Replaces any handlers already installed so repeated calls (tests,
    re-entrant ``main``) do not duplicate output.
    """
    handler = logging.StreamHandler(sys.stderr)
    if settings.format == "json":
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FORMATS.get(settings.format, _FORMATS["detailed"])))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.level.upper(), logging.INFO))


# ============================================================================
# HELPERS
# ============================================================================


def _build_service(args: argparse.Namespace) -> DimensionGateService:
    """Build a service from the config attached to ``args`` (or a fresh load)."""
    cfg: GateConfig = getattr(args, "config", None) or load_config()
    return DimensionGateService.from_config(cfg)


def _parse_dimension_arg(token: str) -> Dimension | None:
    try:
        return parse_dimension(token)
    except ConfigurationError:
        print(
            f"Error: Invalid dimension {token!r}. Use one of: {', '.join(dimension_tokens())}",
            file=sys.stderr,
        )
        return None


# ============================================================================
# COMMANDS
# ============================================================================


def cmd_status(args: argparse.Namespace) -> int:
    """
    Print the open/closed state of every dimension.

    Returns:
        0 on success, 1 on error
    """
    try:
        service = _build_service(args)
        service.load_state()
    except Exception as e:
        print(f"Error reading dimension state: {e}", file=sys.stderr)
        return 1

    if getattr(args, "verbose", False):
        print_config_summary(getattr(args, "config", None))

    print("=== Dimension Status ===")
    for dimension, label in service.status().items():
        print(f"{dimension.display_name}: {label}")
    return 0


def _cmd_toggle(args: argparse.Namespace, requested_open: bool) -> int:
    # Metrics recorded here are discarded; the report belongs to `run`.
    dimension = _parse_dimension_arg(args.dimension)
    if dimension is None:
        return 1

    try:
        service = _build_service(args)
        service.load_state()
        result = service.gate.toggle(dimension, requested_open)
    except Exception as e:
        print(f"Error updating dimension state: {e}", file=sys.stderr)
        return 1

    verb = "opened" if requested_open else "closed"
    state = "open" if requested_open else "closed"
    if result.changed:
        print(f"{dimension.display_name} dimension has been {verb}!")
    else:
        print(f"{dimension.display_name} dimension is already {state}!")
    return 0


def cmd_open(args: argparse.Namespace) -> int:
    """
    Open a dimension.

    Returns:
        0 on success (including "already open"), 1 on error
    """
    return _cmd_toggle(args, True)


def cmd_close(args: argparse.Namespace) -> int:
    """
    Close a dimension.

    Returns:
        0 on success (including "already closed"), 1 on error
    """
    return _cmd_toggle(args, False)


def cmd_schedules(args: argparse.Namespace) -> int:
    """
    List configured schedules with their validation result.

    Returns:
        0 if every enabled schedule is valid, 1 otherwise
    """
    try:
        service = _build_service(args)
    except Exception as e:
        print(f"Error loading schedules: {e}", file=sys.stderr)
        return 1

    results = service.policy.validate_schedules()
    if not results:
        print("No schedules configured.")
        return 0

    exit_code = 0
    for job, error in results:
        enabled = "enabled" if job.enabled else "disabled"
        if error is not None:
            print(f"  {job.name} [{enabled}]: INVALID - {error}")
            if job.enabled:
                exit_code = 1
            continue
        action = parse_action(job.action)
        dimension = parse_dimension(job.dimension)
        print(
            f"  {job.name} [{enabled}]: {action.value} {dimension.display_name} "
            f"after {job.delay} ticks, every {job.interval} ticks"
        )
    return exit_code


def cmd_run(args: argparse.Namespace) -> int:
    """
    Run the gate until interrupted.

    Loads state, starts every enabled schedule and the metrics flush timer,
    then waits. Ctrl+C stops the schedules and writes a final report.

    Returns:
        0 on clean shutdown, 1 on error during startup
    """
    try:
        service = _build_service(args)
    except Exception as e:
        print(f"Error starting gate: {e}", file=sys.stderr)
        return 1

    try:
        with service:
            print("Dimension gate running. Press Ctrl+C to stop.")
            while True:
                time.sleep(1)
    except KeyboardInterrupt:
        print("\nGate stopped.")
        return 0
    except Exception as e:
        print(f"Error running gate: {e}", file=sys.stderr)
        return 1


def cmd_report(args: argparse.Namespace) -> int:
    """
    Print the last written metrics report.

    Falls back to an empty report when nothing has been flushed yet.

    Returns:
        0 on success, 1 on error
    """
    cfg: GateConfig = getattr(args, "config", None) or load_config()
    try:
        report = FileReportWriter(cfg.metrics.absolute_report_path).read_report()
    except OSError as e:
        print(f"Error reading metrics report: {e}", file=sys.stderr)
        return 1

    if report is None:
        report = render_report(MetricsSnapshot())
    print(report, end="")
    return 0


# ============================================================================
# ENTRY POINT
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="dimension-gate",
        description="Dimension Gate - admission control for world dimensions",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # status command
    status_parser = subparsers.add_parser(
        "status",
        help="Show dimension status",
        description="Show whether each dimension is currently open or closed.",
    )
    status_parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Also print the active configuration",
    )
    status_parser.set_defaults(func=cmd_status)

    # open / close commands
    for name, func, verb in (("open", cmd_open, "Open"), ("close", cmd_close, "Close")):
        toggle_parser = subparsers.add_parser(
            name,
            help=f"{verb} a dimension",
            description=f"{verb} a dimension. Accepts: {', '.join(dimension_tokens())}.",
        )
        toggle_parser.add_argument("dimension", help="Dimension name, e.g. nether")
        toggle_parser.set_defaults(func=func)

    # schedules command
    schedules_parser = subparsers.add_parser(
        "schedules",
        help="List configured schedules",
        description="List schedules from the dimension policy file and validate them.",
    )
    schedules_parser.set_defaults(func=cmd_schedules)

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Run the gate with its schedules",
        description="Start the scheduler and metrics flush until interrupted (Ctrl+C).",
    )
    run_parser.set_defaults(func=cmd_run)

    # report command
    report_parser = subparsers.add_parser(
        "report",
        help="Print the metrics report",
        description="Print the most recently written metrics report.",
    )
    report_parser.set_defaults(func=cmd_report)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    args.config = load_config()
    configure_logging(args.config.logging)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
