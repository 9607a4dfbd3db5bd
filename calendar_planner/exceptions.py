"""Exception hierarchy for calendar_planner.

Input-validation failures are raised synchronously to the caller. Lookups of
unknown event identifiers are not errors: they return ``None`` or ``False``.
"""


class CalendarPlannerError(Exception):
    """Base exception for all calendar_planner errors.

    Front ends catch this single type to report any planner failure as a
    user-facing message.
    """


class RecurrenceFormatError(CalendarPlannerError):
    """Recurrence text could not be parsed.

    Raised when:
    - Interval text has no recognised trailing unit code (d, w, m)
    - The leading count is not a positive integer
    - End-date text is neither empty, "0", nor a YYYY-MM-DD date
    """


class InvalidRecurrenceRuleError(CalendarPlannerError):
    """Recurrence rule has no usable stopping condition or a bad interval.

    Raised when:
    - Repeat count is 0 and no end date is given
    - Repeat count is negative
    - Interval count is lower than 1
    """


class EventValidationError(CalendarPlannerError):
    """Event fields failed caller-side validation.

    Raised when:
    - End instant is before start instant
    - Reminder minutes are negative
    """


class DateTimeParseError(CalendarPlannerError):
    """Human-entered date or date-time text matched none of the accepted formats."""


class StorageError(CalendarPlannerError):
    """Reading or writing the CSV data files failed.

    The message is meant to be shown to the user as-is, e.g. when another
    program holds a lock on one of the data files.
    """
