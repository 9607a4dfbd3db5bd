"""calendar_planner.config_loader

Config loader for calendar_planner.

- Reads YAML through PyYAML.
- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("calendar_planner.yaml")


@dataclass
class Config:
    """Typed configuration for calendar_planner.

    Fields:
        data_dir: directory holding event.csv, recurrent.csv and reminder.csv
        log_level: logging level name
        statistics_window_days: days ahead covered by the statistics view (1..366)
        reminder_lookahead_days: days ahead searched for the next reminder (1..366)
    """

    data_dir: str = "data"
    log_level: str = "INFO"
    statistics_window_days: int = 30
    reminder_lookahead_days: int = 30

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int and window sizes are clamped
        to 1..366, logging warnings when coercions occur.
        """
        if data is None:
            data = {}

        def _coerce_days(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                value = int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default
            if value < 1:
                logger.warning("%s %d below minimum; coercing to 1", key, value)
                return 1
            if value > 366:
                logger.warning("%s %d above maximum; coercing to 366", key, value)
                return 366
            return value

        data_dir = data.get("data_dir", "data")
        data_dir = str(data_dir) if data_dir else "data"

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            data_dir=data_dir,
            log_level=log_level,
            statistics_window_days=_coerce_days("statistics_window_days", 30),
            reminder_lookahead_days=_coerce_days("reminder_lookahead_days", 30),
        )


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to
              ./calendar_planner.yaml (relative to current working dir).

    Returns:
        Config dataclass instance with values from file (or defaults).

    Behavior:
    - If file is missing: returns Config() with defaults.
    - If file exists but top-level is not a mapping: raises ValueError.
    """
    p = Path(path) if path else Path.cwd() / DEFAULT_CONFIG_PATH
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    # safe_load returns None for an empty file
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg
