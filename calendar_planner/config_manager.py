"""Environment-based configuration for calendar_planner."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import Any

from .config_loader import Config, load_config

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages configuration overrides from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment to avoid
        surprising overrides of user's environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []
        try:
            content = self.env_file_path.read_text(encoding="utf-8")
        except OSError:
            logger.debug(
                "Failed to read .env file for defaults (continuing): %s",
                str(self.env_file_path),
                exc_info=True,
            )
            return []

        for raw_line in content.splitlines():
            line = raw_line.strip()

            # Skip empty lines and comments
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, val = line.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")

            if key and key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))
        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration overrides from environment variables.

        Recognizes:
        - CALENDAR_PLANNER_DATA_DIR -> 'data_dir'
        - CALENDAR_PLANNER_LOG_LEVEL -> 'log_level'
        - CALENDAR_PLANNER_STATS_DAYS -> 'statistics_window_days' (int)

        Returns:
            Mapping of config keys to override
        """
        cfg: dict[str, Any] = {}

        data_dir = os.environ.get("CALENDAR_PLANNER_DATA_DIR")
        if data_dir:
            cfg["data_dir"] = data_dir

        log_level = os.environ.get("CALENDAR_PLANNER_LOG_LEVEL")
        if log_level:
            cfg["log_level"] = log_level.upper()

        stats_days = os.environ.get("CALENDAR_PLANNER_STATS_DAYS")
        if stats_days:
            try:
                cfg["statistics_window_days"] = int(stats_days)
            except ValueError:
                logger.warning("Invalid CALENDAR_PLANNER_STATS_DAYS=%r; ignoring", stats_days)

        return cfg


def load_settings(config_path: str | None = None, env_file_path: Path | None = None) -> Config:
    """Load the config file and apply environment overrides on top of it.

    Environment variables (including those from the .env file) win over the
    config file.
    """
    manager = ConfigManager(env_file_path)
    manager.load_env_file()
    base = load_config(config_path)
    overrides = manager.build_config_from_env()
    if not overrides:
        return base
    logger.debug("Applying environment overrides: %s", sorted(overrides))
    return Config.from_dict({**asdict(base), **overrides})
