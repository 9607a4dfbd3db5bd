"""Data models for stored events and their expanded occurrences."""

from datetime import date, datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from .exceptions import EventValidationError


class Event(BaseModel):
    """A stored calendar event.

    Times are naive local date-times. The identifier is assigned by the
    EventStore and cannot be changed afterwards; an unsaved candidate (for
    example one being checked for conflicts before creation) has ``id=None``.
    """

    id: Optional[int] = Field(default=None, frozen=True, description="Store-assigned identifier")
    title: str = Field(..., description="Event title")
    description: str = Field(default="", description="Free-text description")
    start: datetime = Field(..., description="Start of the base occurrence")
    end: datetime = Field(..., description="End of the base occurrence")

    model_config = ConfigDict(validate_assignment=True)

    @property
    def duration(self) -> timedelta:
        """Length of a single occurrence."""
        return self.end - self.start

    @field_serializer("start", "end")
    def serialize_datetime(self, dt: datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()


class EventOccurrence(BaseModel):
    """One concrete instance of an event, produced per query and never stored."""

    event_id: Optional[int] = Field(..., description="Identifier of the source event")
    title: str = Field(..., description="Title copied at expansion time")
    start: datetime
    end: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def start_date(self) -> date:
        """Calendar date the occurrence belongs to."""
        return self.start.date()

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


def validate_event_times(start: datetime, end: datetime) -> None:
    """Reject an event whose end is before its start.

    The store accepts any pair of instants, so front ends call this before
    creating or updating an event.

    Raises:
        EventValidationError: If ``end`` is earlier than ``start``
    """
    if end < start:
        raise EventValidationError(
            f"End time {end.isoformat()} is before start time {start.isoformat()}"
        )
