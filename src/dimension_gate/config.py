"""
Gate configuration management.

This module handles loading and accessing gate configuration from multiple
sources with a clear priority order:

    1. Environment variables (highest priority) - for containerized deployments
    2. Config file (config/gate.ini) - for static deployments
    3. Built-in defaults (lowest priority) - sensible fallbacks

Configuration is loaded once at module import time and cached. The GateConfig
dataclass provides typed access to all settings. Dimension states and
schedules live in a separate YAML policy file (``gate.dimensions_file``),
see :mod:`dimension_gate.policies`.

Usage:
    from dimension_gate.config import config

    print(config.gate.ops_bypass_restrictions)
    print(config.metrics.flush_interval_seconds)

Environment Variable Mapping:
    GATE_OPS_BYPASS             -> gate.ops_bypass_restrictions
    GATE_DIMENSIONS_FILE        -> gate.dimensions_file
    GATE_STATE_PATH             -> storage.state_path
    GATE_METRICS_REPORT_PATH    -> metrics.report_path
    GATE_METRICS_FLUSH_SECONDS  -> metrics.flush_interval_seconds
    GATE_TICK_SECONDS           -> schedule.tick_seconds
    GATE_LOG_LEVEL              -> logging.level
"""

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/, data/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Config file paths
CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "gate.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "gate.example.ini"


def _resolve(path: str) -> Path:
    """Resolve a configured path against the project root."""
    p = Path(path)
    if p.is_absolute():
        return p
    return PROJECT_ROOT / p


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================


@dataclass
class GateSettings:
    """Admission policy configuration."""

    ops_bypass_restrictions: bool = True
    dimensions_file: str = "config/dimensions.yaml"

    @property
    def dimensions_path(self) -> Path:
        """Absolute path to the dimension policy YAML file."""
        return _resolve(self.dimensions_file)


@dataclass
class StorageSettings:
    """Dimension state persistence."""

    state_path: str = "data/dimension_state.yaml"

    @property
    def absolute_state_path(self) -> Path:
        """Absolute path to the persisted state file."""
        return _resolve(self.state_path)


@dataclass
class MetricsSettings:
    """Metrics flush configuration."""

    report_path: str = "data/metrics/statistics.txt"
    flush_interval_seconds: float = 300.0

    @property
    def absolute_report_path(self) -> Path:
        """Absolute path to the metrics report file."""
        return _resolve(self.report_path)


@dataclass
class ScheduleSettings:
    """Scheduler clock configuration."""

    tick_seconds: float = 0.05  # 20 ticks per second


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["simple", "detailed", "json"] = "detailed"


@dataclass
class GateConfig:
    """
    Complete gate configuration.

    This is the main configuration object that aggregates all settings sections.
    Access via the module-level `config` singleton, or build one explicitly and
    hand it to :meth:`DimensionGateService.from_config`.
    """

    gate: GateSettings = field(default_factory=GateSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    metrics: MetricsSettings = field(default_factory=MetricsSettings)
    schedule: ScheduleSettings = field(default_factory=ScheduleSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================


def _parse_bool(value: str) -> bool:
    """Parse a string value to boolean."""
    return value.lower() in ("true", "yes", "1", "on", "enabled")


def _load_from_ini(parser: configparser.ConfigParser, cfg: GateConfig) -> None:
    """Load configuration from parsed INI file into GateConfig."""
    # Gate section
    if parser.has_section("gate"):
        if parser.has_option("gate", "ops_bypass_restrictions"):
            cfg.gate.ops_bypass_restrictions = _parse_bool(
                parser.get("gate", "ops_bypass_restrictions")
            )
        if parser.has_option("gate", "dimensions_file"):
            cfg.gate.dimensions_file = parser.get("gate", "dimensions_file")

    # Storage section
    if parser.has_section("storage"):
        if parser.has_option("storage", "state_path"):
            cfg.storage.state_path = parser.get("storage", "state_path")

    # Metrics section
    if parser.has_section("metrics"):
        if parser.has_option("metrics", "report_path"):
            cfg.metrics.report_path = parser.get("metrics", "report_path")
        if parser.has_option("metrics", "flush_interval_seconds"):
            cfg.metrics.flush_interval_seconds = parser.getfloat(
                "metrics", "flush_interval_seconds"
            )

    # Schedule section
    if parser.has_section("schedule"):
        if parser.has_option("schedule", "tick_seconds"):
            cfg.schedule.tick_seconds = parser.getfloat("schedule", "tick_seconds")

    # Logging section
    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in ("simple", "detailed", "json"):
                cfg.logging.format = val  # type: ignore[assignment]


def _apply_env_overrides(cfg: GateConfig) -> None:
    """Apply environment variable overrides to configuration."""
    if env_bypass := os.getenv("GATE_OPS_BYPASS"):
        cfg.gate.ops_bypass_restrictions = _parse_bool(env_bypass)
    if env_dimensions := os.getenv("GATE_DIMENSIONS_FILE"):
        cfg.gate.dimensions_file = env_dimensions

    if env_state := os.getenv("GATE_STATE_PATH"):
        cfg.storage.state_path = env_state

    if env_report := os.getenv("GATE_METRICS_REPORT_PATH"):
        cfg.metrics.report_path = env_report
    if env_flush := os.getenv("GATE_METRICS_FLUSH_SECONDS"):
        cfg.metrics.flush_interval_seconds = float(env_flush)

    if env_tick := os.getenv("GATE_TICK_SECONDS"):
        cfg.schedule.tick_seconds = float(env_tick)

    if env_log := os.getenv("GATE_LOG_LEVEL"):
        cfg.logging.level = env_log.upper()


def load_config(config_file: Path | None = None) -> GateConfig:
    """
    Load configuration from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. ``config_file`` if given, else config/gate.ini
        3. config/gate.example.ini (fallback for development)
        4. Built-in defaults

    Returns:
        GateConfig: Fully populated configuration object.
    """
    cfg = GateConfig()

    # Determine which config file to use
    if config_file is None:
        if CONFIG_FILE.exists():
            config_file = CONFIG_FILE
        elif CONFIG_EXAMPLE.exists():
            # Use example as fallback for development
            config_file = CONFIG_EXAMPLE

    # Load from INI file if available
    if config_file and config_file.exists():
        parser = configparser.ConfigParser()
        parser.read(config_file)
        _load_from_ini(parser, cfg)

    # Apply environment variable overrides (highest priority)
    _apply_env_overrides(cfg)

    return cfg


# =============================================================================
# MODULE-LEVEL SINGLETON
# =============================================================================

# Load configuration once at module import time
config = load_config()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_config_status(cfg: GateConfig | None = None) -> dict:
    """
    Get configuration status for diagnostics.

    Returns a dictionary with configuration source information,
    useful for debugging and the CLI ``status`` output.
    """
    cfg = cfg or config
    return {
        "config_file_exists": CONFIG_FILE.exists(),
        "config_file_path": str(CONFIG_FILE),
        "using_example": not CONFIG_FILE.exists() and CONFIG_EXAMPLE.exists(),
        "ops_bypass_restrictions": cfg.gate.ops_bypass_restrictions,
        "dimensions_file": str(cfg.gate.dimensions_path),
        "state_path": str(cfg.storage.absolute_state_path),
        "metrics_report_path": str(cfg.metrics.absolute_report_path),
    }


def print_config_summary(cfg: GateConfig | None = None) -> None:
    """Print a summary of current configuration to stdout."""
    cfg = cfg or config
    status = get_config_status(cfg)
    print("\n" + "=" * 60)
    print("GATE CONFIGURATION")
    print("=" * 60)
    print(f"Config file: {status['config_file_path']}")
    print(f"File exists: {status['config_file_exists']}")
    if status["using_example"]:
        print("WARNING: Using example config (copy to gate.ini for production)")
    print("-" * 60)
    print(f"Ops bypass:  {cfg.gate.ops_bypass_restrictions}")
    print(f"Dimensions:  {status['dimensions_file']}")
    print(f"State file:  {status['state_path']}")
    print(f"Metrics:     {status['metrics_report_path']}")
    print(f"Tick length: {cfg.schedule.tick_seconds}s")
    print(f"Log level:   {cfg.logging.level}")
    print("=" * 60 + "\n")


# =============================================================================
# TEST HELPERS
# =============================================================================


class use_test_paths:
    """
    Context manager pointing every file the gate touches into one directory.

    Usage:
        from dimension_gate.config import use_test_paths

        def test_something(tmp_path):
            with use_test_paths(tmp_path) as cfg:
                service = DimensionGateService.from_config(cfg)

    Args:
        root: Directory for the state file, metrics report and policy file.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.original: tuple[str, str, str] | None = None

    def __enter__(self) -> GateConfig:
        """Redirect the singleton's paths into ``root``."""
        self.original = (
            config.storage.state_path,
            config.metrics.report_path,
            config.gate.dimensions_file,
        )
        config.storage.state_path = str(self.root / "dimension_state.yaml")
        config.metrics.report_path = str(self.root / "metrics" / "statistics.txt")
        config.gate.dimensions_file = str(self.root / "dimensions.yaml")
        return config

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Restore the original paths."""
        if self.original is not None:
            (
                config.storage.state_path,
                config.metrics.report_path,
                config.gate.dimensions_file,
            ) = self.original
        return None
