"""Parsing of human-entered dates and date-times for the command-line front end.

Each parser tries an ordered list of formats and returns the first match, so
the more specific formats must come first.
"""

import logging
from datetime import date, datetime

from .exceptions import DateTimeParseError

logger = logging.getLogger(__name__)

DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d.%m.%Y",
    "%Y%m%d",
)

MONTH_FORMATS: tuple[str, ...] = (
    "%Y-%m",
    "%Y/%m",
    "%m.%Y",
)

DATETIME_FORMATS: tuple[str, ...] = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M",
    "%d.%m.%Y %H:%M",
    "%Y%m%dT%H%M",
)


def _parse_with_formats(text: str, formats: tuple[str, ...], kind: str) -> datetime:
    trimmed = (text or "").strip()
    for fmt in formats:
        try:
            return datetime.strptime(trimmed, fmt)
        except ValueError:
            continue
    raise DateTimeParseError(
        f"Invalid {kind} {text!r}; expected one of: {', '.join(formats)}"
    )


def parse_date_text(text: str) -> date:
    """Parse a calendar date such as ``2024-01-31``.

    Raises:
        DateTimeParseError: If no accepted format matches
    """
    return _parse_with_formats(text, DATE_FORMATS, "date").date()


def parse_datetime_text(text: str) -> datetime:
    """Parse a naive local date-time such as ``2024-01-31 09:30``.

    A bare date is accepted as midnight of that day.

    Raises:
        DateTimeParseError: If no accepted format matches
    """
    try:
        return _parse_with_formats(text, DATETIME_FORMATS, "date-time")
    except DateTimeParseError as exc:
        try:
            return datetime.combine(parse_date_text(text), datetime.min.time())
        except DateTimeParseError:
            logger.debug("Rejected date-time input %r", text)
            raise exc from None


def parse_month_text(text: str) -> date:
    """Parse a calendar month such as ``2024-01`` into its first day.

    Raises:
        DateTimeParseError: If no accepted format matches
    """
    return _parse_with_formats(text, MONTH_FORMATS, "month").date()
