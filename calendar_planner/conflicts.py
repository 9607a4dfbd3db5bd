"""Scheduling conflict detection between a candidate event and stored events."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from datetime import date, timedelta
from typing import Optional

from .expander import expand_occurrences
from .models import Event, EventOccurrence
from .recurrence import RecurrenceRule, advance

logger = logging.getLogger(__name__)

# An existing event paired with its rule, None when it does not repeat.
ScheduledEvent = tuple[Event, Optional[RecurrenceRule]]


def overlaps(first: EventOccurrence, second: EventOccurrence) -> bool:
    """Return True if two occurrences overlap in time.

    Intervals are half-open: an occurrence ending exactly when the other
    starts does not overlap it.
    """
    return first.start < second.end and first.end > second.start


def calculate_range_end(
    start_date: date,
    end_date: date,
    rule: Optional[RecurrenceRule],
) -> date:
    """Compute the last date a conflict check has to expand up to.

    The floor is the later of the candidate's start and end dates. With a
    rule, the start of the last occurrence is projected from a positive repeat
    count and pushed out to the rule's end date when that is later (the end
    date is honoured here even when ``times`` is positive), then the
    candidate's own day span is added back to cover that occurrence's end.

    Args:
        start_date: Candidate start date
        end_date: Candidate end date
        rule: Candidate recurrence rule, or None

    Returns:
        Inclusive last date of the generation window
    """
    range_end = max(start_date, end_date)
    if rule is None:
        return range_end

    duration_days = (end_date - start_date).days
    last_occurrence_start = start_date
    if rule.times > 0:
        last_occurrence_start = advance(start_date, rule, rule.times - 1)
    if rule.end_date is not None and rule.end_date > last_occurrence_start:
        last_occurrence_start = rule.end_date

    last_occurrence_end = last_occurrence_start
    if duration_days > 0:
        last_occurrence_end = last_occurrence_start + timedelta(days=duration_days)
    return max(range_end, last_occurrence_end)


class ConflictDetector:
    """Pairs a candidate's occurrences against every other event's occurrences.

    The check is a plain cross product over the generation window. Occurrence
    counts are bounded by each rule's repeat count or end date, which keeps
    this cheap at single-user scale.
    """

    def iter_conflicts(
        self,
        ignore_id: Optional[int],
        candidate: Optional[Event],
        rule: Optional[RecurrenceRule],
        existing: Iterable[ScheduledEvent],
    ) -> Iterator[tuple[EventOccurrence, EventOccurrence]]:
        """Yield ``(candidate_occurrence, existing_occurrence)`` pairs that overlap.

        Args:
            ignore_id: Identifier skipped among ``existing`` (the event being edited)
            candidate: Event being created or edited
            rule: Candidate's recurrence rule, or None
            existing: Stored events paired with their rules
        """
        if candidate is None:
            return

        range_start = candidate.start.date()
        range_end = calculate_range_end(range_start, candidate.end.date(), rule)
        candidate_occurrences = expand_occurrences(candidate, rule, range_start, range_end)
        logger.debug(
            "Conflict check for %r over %s..%s with %d candidate occurrences",
            candidate.title,
            range_start,
            range_end,
            len(candidate_occurrences),
        )

        for event, event_rule in existing:
            if ignore_id is not None and event.id == ignore_id:
                continue
            existing_occurrences = expand_occurrences(event, event_rule, range_start, range_end)
            for existing_occurrence in existing_occurrences:
                for candidate_occurrence in candidate_occurrences:
                    if overlaps(existing_occurrence, candidate_occurrence):
                        yield candidate_occurrence, existing_occurrence

    def has_conflict(
        self,
        ignore_id: Optional[int],
        candidate: Optional[Event],
        rule: Optional[RecurrenceRule],
        existing: Iterable[ScheduledEvent],
    ) -> bool:
        """Return True on the first overlap between the candidate and any existing event."""
        for candidate_occurrence, existing_occurrence in self.iter_conflicts(
            ignore_id, candidate, rule, existing
        ):
            logger.debug(
                "Conflict: %r at %s overlaps event %s at %s",
                candidate_occurrence.title,
                candidate_occurrence.start,
                existing_occurrence.event_id,
                existing_occurrence.start,
            )
            return True
        return False

    def find_conflicts(
        self,
        ignore_id: Optional[int],
        candidate: Optional[Event],
        rule: Optional[RecurrenceRule],
        existing: Iterable[ScheduledEvent],
    ) -> list[tuple[EventOccurrence, EventOccurrence]]:
        """Return every overlapping pair, in generation order."""
        return list(self.iter_conflicts(ignore_id, candidate, rule, existing))
