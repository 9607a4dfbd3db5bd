"""Recurrence rules and calendar-correct interval arithmetic."""

from __future__ import annotations

import re
from datetime import date, datetime
from enum import Enum
from typing import Optional, TypeVar

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field, model_validator

from .exceptions import InvalidRecurrenceRuleError, RecurrenceFormatError

_INTERVAL_PATTERN = re.compile(r"(?P<count>\d+)(?P<code>[a-z])")
_NO_END_DATE_TEXT = ("", "0")

DateLike = TypeVar("DateLike", date, datetime)


class RecurrenceUnit(str, Enum):
    """Granularity of a recurrence, stored by its single-letter code."""

    DAY = "d"
    WEEK = "w"
    MONTH = "m"

    @classmethod
    def from_code(cls, code: str) -> RecurrenceUnit:
        """Look up a unit by code, ignoring case.

        Raises:
            RecurrenceFormatError: If the code is not d, w or m
        """
        normalized = code.strip().lower()
        for unit in cls:
            if unit.value == normalized:
                return unit
        raise RecurrenceFormatError(f"Unknown recurrence unit: {code!r}")

    def delta(self, count: int) -> relativedelta:
        """Return the calendar offset for ``count`` units."""
        if self is RecurrenceUnit.DAY:
            return relativedelta(days=count)
        if self is RecurrenceUnit.WEEK:
            return relativedelta(weeks=count)
        return relativedelta(months=count)


class RecurrenceRule(BaseModel):
    """Immutable repeating pattern attached to one event.

    Exactly one stopping condition applies: a positive ``times`` produces that
    many occurrences, otherwise ``end_date`` bounds the series. A rule with
    neither is rejected at construction.
    """

    event_id: Optional[int] = Field(..., description="Identifier of the owning event")
    interval_count: int = Field(..., description="Number of units between occurrences")
    unit: RecurrenceUnit = Field(..., description="Interval unit")
    times: int = Field(default=0, description="Occurrences to produce; 0 means use end_date")
    end_date: Optional[date] = Field(default=None, description="Last date a series may start on")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_stopping_condition(self) -> RecurrenceRule:
        if self.interval_count < 1:
            raise InvalidRecurrenceRuleError(
                f"Recurrence interval must be at least 1, got {self.interval_count}"
            )
        if self.times < 0:
            raise InvalidRecurrenceRuleError(
                f"Recurrence times must not be negative, got {self.times}"
            )
        if self.times == 0 and self.end_date is None:
            raise InvalidRecurrenceRuleError(
                "Recurrence needs either a positive repeat count or an end date"
            )
        return self

    @property
    def effective_end_date(self) -> Optional[date]:
        """End date that bounds expansion; ignored while ``times`` is positive."""
        return self.end_date if self.times == 0 else None

    def to_interval_text(self) -> str:
        """Render the interval as ``<count><unit-code>``, e.g. ``2w``."""
        return f"{self.interval_count}{self.unit.value}"

    def to_end_date_text(self) -> str:
        """Render the end date for persistence, ``0`` when absent."""
        return self.end_date.isoformat() if self.end_date else "0"

    @classmethod
    def parse(
        cls,
        event_id: Optional[int],
        interval_text: str,
        times: int,
        end_date_text: Optional[str] = None,
    ) -> RecurrenceRule:
        """Build a rule from its textual form.

        Args:
            event_id: Identifier of the owning event
            interval_text: Positive integer followed by d, w or m (e.g. "3d")
            times: Repeat count, 0 to stop on the end date instead
            end_date_text: YYYY-MM-DD, or "0"/""/None for no end date

        Returns:
            Parsed RecurrenceRule

        Raises:
            RecurrenceFormatError: If interval or end-date text is malformed
            InvalidRecurrenceRuleError: If the parsed rule has no stopping condition
        """
        count, unit = parse_interval_text(interval_text)
        return cls(
            event_id=event_id,
            interval_count=count,
            unit=unit,
            times=times,
            end_date=parse_end_date_text(end_date_text),
        )


def parse_interval_text(interval_text: str) -> tuple[int, RecurrenceUnit]:
    """Split interval text such as ``"2W"`` into ``(2, RecurrenceUnit.WEEK)``.

    Raises:
        RecurrenceFormatError: If the text is not a positive integer followed by a unit code
    """
    trimmed = (interval_text or "").strip().lower()
    if len(trimmed) < 2:
        raise RecurrenceFormatError(f"Invalid recurrence interval: {interval_text!r}")

    unit = RecurrenceUnit.from_code(trimmed[-1])
    match = _INTERVAL_PATTERN.fullmatch(trimmed)
    if match is None:
        raise RecurrenceFormatError(
            f"Recurrence interval count must be an integer: {interval_text!r}"
        )
    count = int(match.group("count"))
    if count < 1:
        raise RecurrenceFormatError(f"Recurrence interval count must be positive: {interval_text!r}")
    return count, unit


def parse_end_date_text(end_date_text: Optional[str]) -> Optional[date]:
    """Parse a recurrence end date; ``None``, ``""`` and ``"0"`` mean no end date.

    Raises:
        RecurrenceFormatError: If the text is not a YYYY-MM-DD date
    """
    if end_date_text is None:
        return None
    trimmed = end_date_text.strip()
    if trimmed in _NO_END_DATE_TEXT:
        return None
    try:
        return datetime.strptime(trimmed, "%Y-%m-%d").date()
    except ValueError as e:
        raise RecurrenceFormatError(f"Invalid recurrence end date: {end_date_text!r}") from e


def advance(value: DateLike, rule: RecurrenceRule, steps: int = 1) -> DateLike:
    """Move a date or date-time forward by ``steps`` intervals of ``rule``.

    Month arithmetic clamps to the last day of shorter months, so
    2024-01-31 advanced by one month is 2024-02-29.
    """
    if steps <= 0:
        return value
    return value + rule.unit.delta(rule.interval_count * steps)


