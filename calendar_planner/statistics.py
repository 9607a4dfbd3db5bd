"""Summary statistics over the upcoming occurrences of an EventStore."""

import calendar
import logging
from datetime import date, timedelta
from typing import Optional

from pydantic import BaseModel, Field

from .event_store import EventStore

logger = logging.getLogger(__name__)

# Weekday order used to break ties for the busiest day.
_TIE_BREAK_ORDER = (6, 0, 1, 2, 3, 4, 5)


class ScheduleStatistics(BaseModel):
    """Aggregates for the statistics view."""

    window_start: date
    window_end: date
    total_events: int = 0
    recurring_rules: int = 0
    events_with_reminders: int = 0
    upcoming_occurrences: int = 0
    busiest_day: Optional[str] = Field(default=None, description="Weekday name, None if idle")
    average_duration_minutes: int = 0
    longest_title: str = "-"
    longest_minutes: int = 0


def compute_statistics(
    store: EventStore, today: date, window_days: int = 30
) -> ScheduleStatistics:
    """Summarize the store and the occurrences in ``[today, today + window_days]``.

    Args:
        store: Store to summarize
        today: First day of the window
        window_days: Days after ``today`` included in the window

    Returns:
        ScheduleStatistics for the window
    """
    window_end = today + timedelta(days=window_days)
    occurrences = [
        occurrence
        for day_occurrences in store.occurrences_in_range(today, window_end).values()
        for occurrence in day_occurrences
    ]

    stats = ScheduleStatistics(
        window_start=today,
        window_end=window_end,
        total_events=len(store),
        recurring_rules=len(store.list_recurrences()),
        events_with_reminders=store.reminder_count(),
        upcoming_occurrences=len(occurrences),
    )
    if not occurrences:
        return stats

    total_minutes = 0
    day_counts = [0] * 7
    for occurrence in occurrences:
        minutes = occurrence.duration_minutes
        total_minutes += minutes
        if minutes > stats.longest_minutes:
            stats.longest_minutes = minutes
            stats.longest_title = occurrence.title
        day_counts[occurrence.start.weekday()] += 1

    busiest = max(_TIE_BREAK_ORDER, key=lambda weekday: day_counts[weekday])
    stats.busiest_day = calendar.day_name[busiest]
    stats.average_duration_minutes = total_minutes // len(occurrences)
    logger.debug("Computed statistics for %s..%s: %s", today, window_end, stats)
    return stats


def format_duration(duration: timedelta) -> str:
    """Render a duration as ``"2h 5m"``, or ``"45m"`` under an hour."""
    minutes = int(duration.total_seconds() // 60)
    hours, remaining = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {remaining}m"
    return f"{minutes}m"
