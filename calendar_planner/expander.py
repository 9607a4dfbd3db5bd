"""Expansion of one event and its optional recurrence rule into occurrences."""

import logging
from datetime import date
from typing import Optional

from .exceptions import InvalidRecurrenceRuleError
from .models import Event, EventOccurrence
from .recurrence import RecurrenceRule, advance

logger = logging.getLogger(__name__)


def expand_occurrences(
    event: Optional[Event],
    rule: Optional[RecurrenceRule],
    start_date: date,
    end_date: date,
) -> list[EventOccurrence]:
    """Expand an event into the occurrences that start inside a date window.

    The window ``[start_date, end_date]`` is inclusive on both ends and is
    compared against the calendar date of each occurrence's start only; an
    occurrence that starts before the window but ends inside it is excluded.

    Generation walks the series from the event's own start, advancing the
    previous occurrence by one interval each step, and stops when:
    - no rule is attached (at most one occurrence)
    - a positive ``rule.times`` occurrences have been generated
    - the next start date is after the rule's end date (only when ``times`` is 0)

    Args:
        event: Event to expand; ``None`` yields no occurrences
        rule: Recurrence rule, or ``None`` for a one-off event
        start_date: First date of the window
        end_date: Last date of the window

    Returns:
        Occurrences in chronological order

    Raises:
        InvalidRecurrenceRuleError: If the rule has neither a repeat count nor an end date
    """
    if event is None:
        return []
    if rule is not None and rule.times == 0 and rule.end_date is None:
        raise InvalidRecurrenceRuleError(
            f"Recurrence for event {event.id} has neither a repeat count nor an end date"
        )

    occurrences: list[EventOccurrence] = []
    occurrence_start = event.start
    occurrence_end = event.end
    limit_date = rule.effective_end_date if rule is not None else None
    produced = 0

    while True:
        if start_date <= occurrence_start.date() <= end_date:
            occurrences.append(
                EventOccurrence(
                    event_id=event.id,
                    title=event.title,
                    start=occurrence_start,
                    end=occurrence_end,
                )
            )

        produced += 1
        if rule is None:
            break
        if rule.times > 0 and produced >= rule.times:
            break

        occurrence_start = advance(occurrence_start, rule)
        occurrence_end = advance(occurrence_end, rule)
        if limit_date is not None and occurrence_start.date() > limit_date:
            break
        # Later occurrences cannot fall back into the window.
        if occurrence_start.date() > end_date:
            break

    logger.debug(
        "Expanded event %s over %s..%s: %d generated, %d in window",
        event.id,
        start_date,
        end_date,
        produced,
        len(occurrences),
    )
    return occurrences
