"""
Central logging configuration for calendar_planner.

Sets levels for the planner's own loggers and keeps the root logger at a
sensible level. Debug output can be forced through the environment when
troubleshooting expansion or conflict checks.
"""

import logging
import os
from typing import Optional

PLANNER_MODULES = (
    "calendar_planner",
    "calendar_planner.__main__",
    "calendar_planner.config_loader",
    "calendar_planner.config_manager",
    "calendar_planner.conflicts",
    "calendar_planner.csv_storage",
    "calendar_planner.datetime_utils",
    "calendar_planner.event_store",
    "calendar_planner.expander",
    "calendar_planner.recurrence",
    "calendar_planner.statistics",
)

_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR")


def configure_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    base_level: str = "INFO",
) -> None:
    """
    Configure logging levels for calendar_planner.

    Args:
        debug_mode: Whether to enable debug logging for calendar_planner modules
        force_debug: Override debug mode setting (None to use env var detection)
        base_level: Level name used when debug is off (DEBUG, INFO, WARNING, ERROR)

    Environment Variables:
        CALENDAR_PLANNER_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CALENDAR_PLANNER_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("CALENDAR_PLANNER_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("CALENDAR_PLANNER_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    base = base_level.upper() if base_level.upper() in _LEVEL_NAMES else "INFO"
    root_level = logging.DEBUG if final_debug else getattr(logging, base)
    if env_log_level in _LEVEL_NAMES:
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s")
        )
        root_logger.addHandler(handler)

    planner_level = logging.DEBUG if final_debug else root_level
    for module in PLANNER_MODULES:
        logging.getLogger(module).setLevel(planner_level)

    if final_debug:
        root_logger.debug("Debug logging enabled for calendar_planner modules")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in PLANNER_MODULES:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
