"""Shared fixtures for calendar_planner tests."""

import logging
from collections.abc import Generator
from datetime import datetime
from typing import Any, Callable, Optional

import pytest

from calendar_planner.event_store import EventStore
from calendar_planner.models import Event
from calendar_planner.planner_logging import PLANNER_MODULES
from calendar_planner.recurrence import RecurrenceRule, RecurrenceUnit

PLANNER_ENV_VARS = (
    "CALENDAR_PLANNER_DEBUG",
    "CALENDAR_PLANNER_LOG_LEVEL",
    "CALENDAR_PLANNER_DATA_DIR",
    "CALENDAR_PLANNER_STATS_DAYS",
)


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Ensure planner environment variables do not leak into tests."""
    for key in PLANNER_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture(autouse=True)
def restore_logger_levels() -> Generator[None, Any, None]:
    """Put root and planner logger levels back after each test."""
    names = ("", *PLANNER_MODULES)
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


@pytest.fixture
def store() -> EventStore:
    """Empty store with identifiers starting at 1."""
    return EventStore()


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for events from compact ``YYYY-MM-DDTHH:MM`` strings."""

    def _make(
        start: str,
        end: str,
        title: str = "Event",
        event_id: Optional[int] = 1,
        description: str = "",
    ) -> Event:
        return Event(
            id=event_id,
            title=title,
            description=description,
            start=datetime.fromisoformat(start),
            end=datetime.fromisoformat(end),
        )

    return _make


@pytest.fixture
def make_rule() -> Callable[..., RecurrenceRule]:
    """Factory for recurrence rules with keyword defaults."""

    def _make(
        unit: RecurrenceUnit = RecurrenceUnit.DAY,
        interval_count: int = 1,
        times: int = 0,
        end_date: Any = None,
        event_id: Optional[int] = 1,
    ) -> RecurrenceRule:
        return RecurrenceRule(
            event_id=event_id,
            interval_count=interval_count,
            unit=unit,
            times=times,
            end_date=end_date,
        )

    return _make


def pytest_configure(config: Any) -> None:
    """Register the markers used by the planner tests."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "smoke: Basic smoke tests")
