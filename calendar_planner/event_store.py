"""In-memory event store: mutation API plus range and conflict queries."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .conflicts import ConflictDetector, ScheduledEvent
from .exceptions import EventValidationError
from .expander import expand_occurrences
from .models import Event, EventOccurrence
from .recurrence import RecurrenceRule

logger = logging.getLogger(__name__)


class UpcomingReminder(BaseModel):
    """The next occurrence that carries a reminder."""

    occurrence: EventOccurrence
    minutes_before: int = Field(..., description="Reminder lead time in minutes")
    time_until: timedelta = Field(..., description="Time left until the occurrence starts")

    model_config = ConfigDict(frozen=True)

    @property
    def is_due(self) -> bool:
        """True once the occurrence is within its reminder lead time."""
        return self.time_until <= timedelta(minutes=self.minutes_before)


class EventStore:
    """Owns events, their recurrence rules and reminders for one session.

    Identifiers come from a monotonic counter owned by the instance and are
    never reused after deletion. The store is not thread-safe: callers must
    not mutate it while a range query or conflict check is reading it.
    """

    def __init__(self, next_id: int = 1, conflict_detector: Optional[ConflictDetector] = None):
        """Initialize an empty store.

        Args:
            next_id: First identifier to hand out, normally the highest
                persisted identifier plus one
            conflict_detector: Detector used by has_conflict
        """
        self._events: dict[int, Event] = {}
        self._recurrences: dict[int, RecurrenceRule] = {}
        self._reminders: dict[int, int] = {}
        self._next_id = max(1, next_id)
        self._conflict_detector = conflict_detector or ConflictDetector()

    @property
    def next_id(self) -> int:
        return self._next_id

    # Events

    def create_event(
        self, title: str, description: str, start: datetime, end: datetime
    ) -> Event:
        """Create an event with the next free identifier."""
        event = Event(id=self._next_id, title=title, description=description, start=start, end=end)
        self._next_id += 1
        self._events[event.id] = event
        logger.debug("Created event %d %r", event.id, title)
        return event

    def add_event(self, event: Event) -> None:
        """Insert an event that already carries an identifier (e.g. loaded from disk).

        Raises:
            EventValidationError: If the event has no identifier
        """
        if event.id is None:
            raise EventValidationError("Cannot add an event without an identifier")
        self._events[event.id] = event
        self._next_id = max(self._next_id, event.id + 1)

    def find_event(self, event_id: int) -> Optional[Event]:
        return self._events.get(event_id)

    def list_events(self) -> list[Event]:
        """All events ordered by start."""
        return sorted(self._events.values(), key=lambda e: e.start)

    def update_event(
        self,
        event_id: int,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Optional[Event]:
        """Update the given fields of an event in place.

        Returns:
            The updated event, or None if no event has this identifier
        """
        event = self._events.get(event_id)
        if event is None:
            return None
        if title is not None:
            event.title = title
        if description is not None:
            event.description = description
        if start is not None:
            event.start = start
        if end is not None:
            event.end = end
        logger.debug("Updated event %d", event_id)
        return event

    def delete_event(self, event_id: int) -> bool:
        """Delete an event together with its rule and reminder.

        Returns:
            False if no event has this identifier
        """
        if event_id not in self._events:
            return False
        del self._events[event_id]
        self._recurrences.pop(event_id, None)
        self._reminders.pop(event_id, None)
        logger.debug("Deleted event %d", event_id)
        return True

    # Recurrences

    def set_recurrence(self, rule: Optional[RecurrenceRule]) -> None:
        if rule is None:
            return
        if rule.event_id is None:
            raise EventValidationError("Recurrence rule is not attached to an event")
        self._recurrences[rule.event_id] = rule

    def clear_recurrence(self, event_id: int) -> None:
        self._recurrences.pop(event_id, None)

    def find_recurrence(self, event_id: int) -> Optional[RecurrenceRule]:
        return self._recurrences.get(event_id)

    def list_recurrences(self) -> list[RecurrenceRule]:
        return list(self._recurrences.values())

    # Reminders

    def set_reminder_minutes(self, event_id: int, minutes: Optional[int]) -> None:
        """Set how many minutes before an event to remind; None removes the reminder.

        Raises:
            EventValidationError: If minutes is negative
        """
        if minutes is None:
            self._reminders.pop(event_id, None)
            return
        if minutes < 0:
            raise EventValidationError("Reminder minutes must be non-negative")
        self._reminders[event_id] = minutes

    def find_reminder_minutes(self, event_id: int) -> Optional[int]:
        return self._reminders.get(event_id)

    def reminder_count(self) -> int:
        return len(self._reminders)

    def reminders(self) -> dict[int, int]:
        return dict(self._reminders)

    # Queries

    def scheduled_events(self) -> list[ScheduledEvent]:
        """Every stored event paired with its rule (None when it does not repeat)."""
        return [(event, self._recurrences.get(event_id)) for event_id, event in self._events.items()]

    def occurrences_in_range(
        self, start_date: date, end_date: date
    ) -> dict[date, list[EventOccurrence]]:
        """Group every occurrence starting in ``[start_date, end_date]`` by date.

        Each day's list is sorted by start time and the mapping iterates in
        ascending date order. Days without occurrences are absent.
        """
        grouped: dict[date, list[EventOccurrence]] = defaultdict(list)
        for event, rule in self.scheduled_events():
            for occurrence in expand_occurrences(event, rule, start_date, end_date):
                grouped[occurrence.start_date].append(occurrence)

        return {
            day: sorted(grouped[day], key=lambda o: o.start) for day in sorted(grouped)
        }

    def has_conflict(
        self,
        ignore_id: Optional[int],
        candidate: Optional[Event],
        rule: Optional[RecurrenceRule],
    ) -> bool:
        """Check a candidate event against every stored event except ``ignore_id``."""
        return self._conflict_detector.has_conflict(
            ignore_id, candidate, rule, self.scheduled_events()
        )

    def find_conflicts(
        self,
        ignore_id: Optional[int],
        candidate: Optional[Event],
        rule: Optional[RecurrenceRule],
    ) -> list[tuple[EventOccurrence, EventOccurrence]]:
        return self._conflict_detector.find_conflicts(
            ignore_id, candidate, rule, self.scheduled_events()
        )

    def search(
        self,
        start_date: date,
        end_date: date,
        title_contains: str = "",
        description_contains: str = "",
        recurring_only: bool = False,
    ) -> list[EventOccurrence]:
        """Occurrences in the window filtered by case-insensitive text and recurrence.

        Returns:
            Matching occurrences in chronological order
        """
        title_keyword = title_contains.strip().lower()
        description_keyword = description_contains.strip().lower()

        results = []
        for day_occurrences in self.occurrences_in_range(start_date, end_date).values():
            for occurrence in day_occurrences:
                event = self._events.get(occurrence.event_id)
                if event is None:
                    continue
                if title_keyword and title_keyword not in event.title.lower():
                    continue
                if description_keyword and description_keyword not in event.description.lower():
                    continue
                if recurring_only and event.id not in self._recurrences:
                    continue
                results.append(occurrence)
        return results

    def next_reminder(self, now: datetime, lookahead_days: int = 30) -> Optional[UpcomingReminder]:
        """Find the earliest upcoming occurrence whose event has a reminder.

        Occurrences are considered from ``now`` up to the end of the day
        ``lookahead_days`` ahead.
        """
        range_start = now.date()
        range_end = range_start + timedelta(days=lookahead_days)

        nearest: Optional[EventOccurrence] = None
        for event, rule in self.scheduled_events():
            if event.id not in self._reminders:
                continue
            for occurrence in expand_occurrences(event, rule, range_start, range_end):
                if occurrence.start < now:
                    continue
                if nearest is None or occurrence.start < nearest.start:
                    nearest = occurrence

        if nearest is None:
            return None
        return UpcomingReminder(
            occurrence=nearest,
            minutes_before=self._reminders[nearest.event_id],
            time_until=nearest.start - now,
        )

    def __len__(self) -> int:
        return len(self._events)
