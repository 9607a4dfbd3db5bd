"""Unit tests for calendar_planner.conflicts."""

from datetime import date, datetime

import pytest

from calendar_planner.conflicts import ConflictDetector, calculate_range_end, overlaps
from calendar_planner.models import EventOccurrence
from calendar_planner.recurrence import RecurrenceUnit

pytestmark = pytest.mark.unit


def _occurrence(start: str, end: str, event_id: int = 1) -> EventOccurrence:
    return EventOccurrence(
        event_id=event_id,
        title=f"Event {event_id}",
        start=datetime.fromisoformat(start),
        end=datetime.fromisoformat(end),
    )


class TestOverlaps:
    """Tests for the half-open overlap predicate."""

    @pytest.mark.parametrize(
        "first,second,expected",
        [
            (("2024-03-01T10:00", "2024-03-01T11:00"), ("2024-03-01T10:30", "2024-03-01T11:30"), True),
            (("2024-03-01T10:00", "2024-03-01T12:00"), ("2024-03-01T10:30", "2024-03-01T11:00"), True),
            (("2024-03-01T10:00", "2024-03-01T11:00"), ("2024-03-01T11:00", "2024-03-01T12:00"), False),
            (("2024-03-01T10:00", "2024-03-01T11:00"), ("2024-03-01T12:00", "2024-03-01T13:00"), False),
            (("2024-03-01T10:00", "2024-03-01T11:00"), ("2024-03-01T10:00", "2024-03-01T11:00"), True),
        ],
    )
    def test_overlap_is_symmetric(self, first, second, expected):
        a = _occurrence(*first, event_id=1)
        b = _occurrence(*second, event_id=2)

        assert overlaps(a, b) is expected
        assert overlaps(b, a) is expected

    def test_touching_endpoints_do_not_overlap(self):
        a = _occurrence("2024-03-01T09:00", "2024-03-01T10:00")
        b = _occurrence("2024-03-01T10:00", "2024-03-01T10:30")

        assert not overlaps(a, b)


class TestCalculateRangeEnd:
    """Tests for sizing the conflict generation window."""

    def test_without_rule_uses_later_of_start_and_end(self):
        assert calculate_range_end(date(2024, 3, 1), date(2024, 3, 3), None) == date(2024, 3, 3)
        assert calculate_range_end(date(2024, 3, 5), date(2024, 3, 3), None) == date(2024, 3, 5)

    def test_projects_last_occurrence_from_repeat_count(self, make_rule):
        rule = make_rule(unit=RecurrenceUnit.WEEK, interval_count=1, times=4)

        assert calculate_range_end(date(2024, 1, 1), date(2024, 1, 1), rule) == date(2024, 1, 22)

    def test_adds_back_multi_day_span(self, make_rule):
        rule = make_rule(unit=RecurrenceUnit.DAY, interval_count=2, times=3)

        assert calculate_range_end(date(2024, 1, 1), date(2024, 1, 3), rule) == date(2024, 1, 7)

    def test_uses_end_date_without_repeat_count(self, make_rule):
        rule = make_rule(unit=RecurrenceUnit.DAY, interval_count=1, times=0, end_date="2024-02-10")

        assert calculate_range_end(date(2024, 1, 1), date(2024, 1, 1), rule) == date(2024, 2, 10)

    def test_month_projection_is_calendar_correct(self, make_rule):
        rule = make_rule(unit=RecurrenceUnit.MONTH, interval_count=1, times=2)

        assert calculate_range_end(date(2024, 1, 31), date(2024, 1, 31), rule) == date(2024, 2, 29)

    def test_end_date_widens_window_even_with_repeat_count(self, make_rule):
        """Documented quirk: expansion ignores this end date, window sizing does not."""
        rule = make_rule(
            unit=RecurrenceUnit.DAY, interval_count=1, times=2, end_date="2024-03-01"
        )

        assert calculate_range_end(date(2024, 1, 1), date(2024, 1, 1), rule) == date(2024, 3, 1)


class TestConflictDetector:
    """Tests for ConflictDetector."""

    def setup_method(self):
        self.detector = ConflictDetector()

    @pytest.mark.smoke
    def test_single_events_overlapping(self, make_event):
        candidate = make_event("2024-03-01T10:00", "2024-03-01T11:00", event_id=None)
        existing = make_event("2024-03-01T10:30", "2024-03-01T11:30", event_id=5)

        assert self.detector.has_conflict(None, candidate, None, [(existing, None)]) is True

    def test_touching_events_do_not_conflict(self, make_event):
        candidate = make_event("2024-03-01T10:00", "2024-03-01T11:00", event_id=None)
        existing = make_event("2024-03-01T11:00", "2024-03-01T12:00", event_id=5)

        assert self.detector.has_conflict(None, candidate, None, [(existing, None)]) is False

    def test_ignored_identifier_never_conflicts_with_itself(self, make_event):
        stored = make_event("2024-03-01T10:00", "2024-03-01T11:00", event_id=3)
        edited = make_event("2024-03-01T10:00", "2024-03-01T11:00", event_id=3)

        assert self.detector.has_conflict(3, edited, None, [(stored, None)]) is False

    def test_ignore_only_skips_the_nominated_event(self, make_event):
        stored = make_event("2024-03-01T10:00", "2024-03-01T11:00", event_id=3)
        other = make_event("2024-03-01T10:15", "2024-03-01T10:45", event_id=4)
        edited = make_event("2024-03-01T10:00", "2024-03-01T11:00", event_id=3)

        assert self.detector.has_conflict(3, edited, None, [(stored, None), (other, None)]) is True

    def test_recurring_candidate_hits_later_single_event(self, make_event, make_rule):
        candidate = make_event("2024-01-01T09:00", "2024-01-01T09:30", event_id=None)
        rule = make_rule(unit=RecurrenceUnit.DAY, interval_count=1, times=10, event_id=None)
        existing = make_event("2024-01-08T09:15", "2024-01-08T10:00", event_id=2)

        assert self.detector.has_conflict(None, candidate, rule, [(existing, None)]) is True

    def test_recurring_existing_event_hits_candidate(self, make_event, make_rule):
        existing = make_event("2024-01-01T14:00", "2024-01-01T15:00", event_id=2)
        existing_rule = make_rule(
            unit=RecurrenceUnit.WEEK, interval_count=1, times=0, end_date="2024-12-31", event_id=2
        )
        candidate = make_event("2024-02-05T14:30", "2024-02-05T14:45", event_id=None)

        assert self.detector.has_conflict(
            None, candidate, None, [(existing, existing_rule)]
        ) is True

    def test_recurring_events_on_different_weekdays_do_not_conflict(self, make_event, make_rule):
        existing = make_event("2024-01-01T14:00", "2024-01-01T15:00", event_id=2)
        existing_rule = make_rule(unit=RecurrenceUnit.WEEK, interval_count=1, times=8, event_id=2)
        candidate = make_event("2024-01-02T14:00", "2024-01-02T15:00", event_id=None)
        rule = make_rule(unit=RecurrenceUnit.WEEK, interval_count=1, times=8, event_id=None)

        assert self.detector.has_conflict(
            None, candidate, rule, [(existing, existing_rule)]
        ) is False

    def test_monthly_events_use_calendar_month_arithmetic(self, make_event, make_rule):
        """A series on the 31st clamps to Feb 29 and collides with a series there."""
        month_end = make_event("2024-01-31T09:00", "2024-01-31T10:00", event_id=2)
        month_end_rule = make_rule(unit=RecurrenceUnit.MONTH, interval_count=1, times=3, event_id=2)
        candidate = make_event("2023-12-29T09:30", "2023-12-29T10:30", event_id=None)
        rule = make_rule(unit=RecurrenceUnit.MONTH, interval_count=1, times=4, event_id=None)

        conflicts = self.detector.find_conflicts(
            None, candidate, rule, [(month_end, month_end_rule)]
        )

        assert len(conflicts) >= 1
        candidate_occurrence, existing_occurrence = conflicts[0]
        assert candidate_occurrence.start == datetime(2024, 2, 29, 9, 30)
        assert existing_occurrence.start == datetime(2024, 2, 29, 9, 0)

    def test_monthly_events_on_different_days_do_not_conflict(self, make_event, make_rule):
        month_end = make_event("2024-01-31T09:00", "2024-01-31T10:00", event_id=2)
        month_end_rule = make_rule(unit=RecurrenceUnit.MONTH, interval_count=1, times=3, event_id=2)
        candidate = make_event("2024-01-28T09:00", "2024-01-28T10:00", event_id=None)
        rule = make_rule(unit=RecurrenceUnit.MONTH, interval_count=1, times=3, event_id=None)

        assert self.detector.has_conflict(
            None, candidate, rule, [(month_end, month_end_rule)]
        ) is False

    def test_existing_events_before_candidate_start_are_ignored(self, make_event):
        """Occurrences starting before the candidate's start date are outside the window."""
        existing = make_event("2024-02-29T23:00", "2024-03-01T10:30", event_id=2)
        candidate = make_event("2024-03-01T10:00", "2024-03-01T11:00", event_id=None)

        assert self.detector.has_conflict(None, candidate, None, [(existing, None)]) is False

    def test_no_candidate_means_no_conflict(self, make_event):
        existing = make_event("2024-03-01T10:00", "2024-03-01T11:00", event_id=2)

        assert self.detector.has_conflict(None, None, None, [(existing, None)]) is False

    def test_empty_store_has_no_conflict(self, make_event):
        candidate = make_event("2024-03-01T10:00", "2024-03-01T11:00", event_id=None)

        assert self.detector.has_conflict(None, candidate, None, []) is False
