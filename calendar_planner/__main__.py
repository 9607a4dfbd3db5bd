"""Command-line entry for calendar_planner.

Each sub-command loads the CSV data directory, runs one operation against the
EventStore and saves again when the operation changed anything.
"""

from __future__ import annotations

import argparse
import calendar
import logging
import sys
from datetime import date, datetime, timedelta
from typing import NoReturn, Optional, TextIO

from . import _init_logging
from .config_loader import Config
from .config_manager import load_settings
from .csv_storage import CsvEventRepository
from .datetime_utils import parse_date_text, parse_datetime_text, parse_month_text
from .event_store import EventStore
from .exceptions import CalendarPlannerError
from .models import Event, EventOccurrence, validate_event_times
from .planner_logging import configure_logging
from .recurrence import RecurrenceRule
from .statistics import compute_statistics, format_duration

logger = logging.getLogger(__name__)

TIME_FORMAT = "%H:%M"


def _add_recurrence_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--interval", metavar="TEXT", help="Repeat interval such as 1d, 2w or 1m")
    parser.add_argument(
        "--times", type=int, help="Number of occurrences (0 or omitted to stop on --until)"
    )
    parser.add_argument("--until", metavar="DATE", help="Last date a repetition may start on")
    parser.add_argument("--reminder", type=int, metavar="MINUTES", help="Remind this many minutes before")


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for calendar_planner CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="calendar-planner",
        description="Calendar Planner - personal events with recurrence and conflict checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  calendar-planner add "Standup" "2024-01-01 09:00" "2024-01-01 09:15" --interval 1d --times 5
  calendar-planner agenda --from 2024-01-01 --to 2024-01-07
  calendar-planner calendar 2024-01
  calendar-planner stats --days 14
        """,
    )
    parser.add_argument("--config", metavar="PATH", help="YAML config file")
    parser.add_argument("--data-dir", metavar="DIR", help="Directory holding the CSV files")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Create an event")
    add.add_argument("title")
    add.add_argument("start", help="Start date-time")
    add.add_argument("end", help="End date-time")
    add.add_argument("--description", default="")
    _add_recurrence_arguments(add)

    edit = sub.add_parser("edit", help="Update an event")
    edit.add_argument("event_id", type=int)
    edit.add_argument("--title")
    edit.add_argument("--start")
    edit.add_argument("--end")
    edit.add_argument("--description")
    _add_recurrence_arguments(edit)
    edit.add_argument("--no-repeat", action="store_true", help="Remove the recurrence rule")
    edit.add_argument("--no-reminder", action="store_true", help="Remove the reminder")

    delete = sub.add_parser("delete", help="Delete an event")
    delete.add_argument("event_id", type=int)

    month = sub.add_parser("calendar", help="Show a month grid marking days with events")
    month.add_argument("month", metavar="YYYY-MM")

    week = sub.add_parser("week", help="List the Sunday-to-Saturday week containing a date")
    week.add_argument("date", metavar="DATE")

    agenda = sub.add_parser("agenda", help="List occurrences day by day")
    agenda.add_argument("--from", dest="start", required=True, metavar="DATE")
    agenda.add_argument("--to", dest="end", required=True, metavar="DATE")

    search = sub.add_parser("search", help="Filter occurrences in a date range")
    search.add_argument("--from", dest="start", required=True, metavar="DATE")
    search.add_argument("--to", dest="end", required=True, metavar="DATE")
    search.add_argument("--title", default="", help="Title contains")
    search.add_argument("--description", default="", help="Description contains")
    search.add_argument("--recurring-only", action="store_true")

    stats = sub.add_parser("stats", help="Show statistics for the coming days")
    stats.add_argument("--days", type=int, help="Window size in days")

    sub.add_parser("remind", help="Show the next event with a reminder")

    backup = sub.add_parser("backup", help="Write all data to one backup file")
    backup.add_argument("path")

    restore = sub.add_parser("restore", help="Restore data from a backup file")
    restore.add_argument("path")
    restore.add_argument("--merge", action="store_true", help="Append instead of replacing")

    return parser


def _parse_rule(args: argparse.Namespace, event_id: Optional[int]) -> Optional[RecurrenceRule]:
    if not args.interval:
        if args.times is not None or args.until is not None:
            raise CalendarPlannerError("--times and --until need --interval")
        return None
    return RecurrenceRule.parse(event_id, args.interval, args.times or 0, args.until)


def _rebuild_rule(rule: Optional[RecurrenceRule], args: argparse.Namespace) -> RecurrenceRule:
    """Apply --times and --until to an existing rule, keeping its interval.

    Giving only --until switches the rule to stop on that date.
    """
    if rule is None:
        raise CalendarPlannerError(
            "--times and --until need --interval for an event that does not repeat"
        )
    if args.times is not None:
        times = args.times
    elif args.until is not None:
        times = 0
    else:
        times = rule.times
    until = args.until if args.until is not None else rule.to_end_date_text()
    return RecurrenceRule.parse(rule.event_id, rule.to_interval_text(), times, until)


def _describe(occurrence: EventOccurrence) -> str:
    return (
        f"{occurrence.title} ({occurrence.start.strftime(TIME_FORMAT)}"
        f" - {occurrence.end.strftime(TIME_FORMAT)})"
    )


def _describe_day(occurrences: dict[date, list[EventOccurrence]], day: date) -> str:
    day_occurrences = occurrences.get(day, [])
    return ", ".join(_describe(o) for o in day_occurrences) if day_occurrences else "-"


def _report_conflicts(
    store: EventStore,
    ignore_id: Optional[int],
    candidate: Event,
    rule: Optional[RecurrenceRule],
    out: TextIO,
) -> bool:
    conflicts = store.find_conflicts(ignore_id, candidate, rule)
    if not conflicts:
        return False
    candidate_occurrence, existing_occurrence = conflicts[0]
    print(
        f"Conflict: {candidate.title} on {candidate_occurrence.start_date} overlaps "
        f"{_describe(existing_occurrence)}",
        file=out,
    )
    return True


def _cmd_add(args: argparse.Namespace, store: EventStore, out: TextIO) -> bool:
    start = parse_datetime_text(args.start)
    end = parse_datetime_text(args.end)
    validate_event_times(start, end)
    rule = _parse_rule(args, None)

    candidate = Event(title=args.title, description=args.description, start=start, end=end)
    if _report_conflicts(store, None, candidate, rule, out):
        raise CalendarPlannerError("Event not created because it conflicts with an existing event")

    event = store.create_event(args.title, args.description, start, end)
    if rule is not None:
        store.set_recurrence(rule.model_copy(update={"event_id": event.id}))
    store.set_reminder_minutes(event.id, args.reminder)
    print(f"Created event {event.id}: {event.title}", file=out)
    return True


def _cmd_edit(args: argparse.Namespace, store: EventStore, out: TextIO) -> bool:
    event = store.find_event(args.event_id)
    if event is None:
        raise CalendarPlannerError(f"Event {args.event_id} not found")

    title = args.title if args.title is not None else event.title
    description = args.description if args.description is not None else event.description
    start = parse_datetime_text(args.start) if args.start else event.start
    end = parse_datetime_text(args.end) if args.end else event.end
    validate_event_times(start, end)

    if args.no_repeat:
        rule = None
    elif args.interval:
        rule = _parse_rule(args, event.id)
    elif args.times is not None or args.until is not None:
        rule = _rebuild_rule(store.find_recurrence(event.id), args)
    else:
        rule = store.find_recurrence(event.id)

    candidate = Event(title=title, description=description, start=start, end=end)
    if _report_conflicts(store, event.id, candidate, rule, out):
        raise CalendarPlannerError("Event not updated because it conflicts with an existing event")

    store.update_event(event.id, title=title, description=description, start=start, end=end)
    if rule is None:
        store.clear_recurrence(event.id)
    else:
        store.set_recurrence(rule)
    if args.no_reminder:
        store.set_reminder_minutes(event.id, None)
    elif args.reminder is not None:
        store.set_reminder_minutes(event.id, args.reminder)
    print(f"Updated event {event.id}: {title}", file=out)
    return True


def _cmd_delete(args: argparse.Namespace, store: EventStore, out: TextIO) -> bool:
    if not store.delete_event(args.event_id):
        raise CalendarPlannerError(f"Event {args.event_id} not found")
    print(f"Deleted event {args.event_id}", file=out)
    return True


def _cmd_agenda(args: argparse.Namespace, store: EventStore, out: TextIO) -> bool:
    start = parse_date_text(args.start)
    end = parse_date_text(args.end)
    occurrences = store.occurrences_in_range(start, end)
    print(f"=== Events between {start} and {end} ===", file=out)
    current = start
    while current <= end:
        print(f"{current}: {_describe_day(occurrences, current)}", file=out)
        current += timedelta(days=1)
    return False


def _cmd_calendar(args: argparse.Namespace, store: EventStore, out: TextIO) -> bool:
    first = parse_month_text(args.month)
    last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
    occurrences = store.occurrences_in_range(first, last)

    print(f"{calendar.month_name[first.month]} {first.year}", file=out)
    print("Su Mo Tu We Th Fr Sa", file=out)
    grid = calendar.Calendar(firstweekday=calendar.SUNDAY)
    for week in grid.monthdayscalendar(first.year, first.month):
        cells = []
        for day in week:
            if day == 0:
                cells.append("   ")
            else:
                marker = "*" if first.replace(day=day) in occurrences else " "
                cells.append(f"{day:2d}{marker}")
        print(" ".join(cells).rstrip(), file=out)

    for day, day_occurrences in occurrences.items():
        for occurrence in day_occurrences:
            print(
                f"* {day}: {occurrence.title} ({occurrence.start.strftime(TIME_FORMAT)})",
                file=out,
            )
    return False


def _cmd_week(args: argparse.Namespace, store: EventStore, out: TextIO) -> bool:
    anchor = parse_date_text(args.date)
    # Weeks run Sunday to Saturday.
    start = anchor - timedelta(days=(anchor.weekday() + 1) % 7)
    occurrences = store.occurrences_in_range(start, start + timedelta(days=6))

    print(f"=== Week of {start} ===", file=out)
    for offset in range(7):
        current = start + timedelta(days=offset)
        print(
            f"{calendar.day_abbr[current.weekday()]} {current.day:02d}: "
            f"{_describe_day(occurrences, current)}",
            file=out,
        )
    return False


def _cmd_search(args: argparse.Namespace, store: EventStore, out: TextIO) -> bool:
    results = store.search(
        parse_date_text(args.start),
        parse_date_text(args.end),
        title_contains=args.title,
        description_contains=args.description,
        recurring_only=args.recurring_only,
    )
    print("=== Filtered results ===", file=out)
    for occurrence in results:
        recurring = store.find_recurrence(occurrence.event_id) is not None
        suffix = " [Recurring]" if recurring else ""
        print(f"{occurrence.start_date}: {_describe(occurrence)}{suffix}", file=out)
    return False


def _cmd_stats(args: argparse.Namespace, store: EventStore, out: TextIO, settings: Config) -> bool:
    days = args.days if args.days is not None else settings.statistics_window_days
    stats = compute_statistics(store, date.today(), days)
    print(f"=== Statistics (next {days} days) ===", file=out)
    print(f"Total stored events: {stats.total_events}", file=out)
    print(f"Recurring rules: {stats.recurring_rules}", file=out)
    print(f"Events with reminders: {stats.events_with_reminders}", file=out)
    print(f"Upcoming occurrences: {stats.upcoming_occurrences}", file=out)
    print(f"Busiest day of week: {stats.busiest_day or '-'}", file=out)
    print(f"Average duration: {stats.average_duration_minutes} minutes", file=out)
    print(f"Longest event: {stats.longest_title} ({stats.longest_minutes} minutes)", file=out)
    return False


def _cmd_remind(store: EventStore, out: TextIO, settings: Config) -> bool:
    upcoming = store.next_reminder(datetime.now(), settings.reminder_lookahead_days)
    if upcoming is None:
        print("No upcoming events with reminders", file=out)
    elif upcoming.is_due:
        print(
            f"Your next event is coming soon in {format_duration(upcoming.time_until)}: "
            f"{upcoming.occurrence.title}",
            file=out,
        )
    else:
        print(
            f"Next reminder: {upcoming.occurrence.title} at "
            f"{upcoming.occurrence.start.isoformat(sep=' ', timespec='minutes')}",
            file=out,
        )
    return False


def run(argv: Optional[list[str]] = None, out: Optional[TextIO] = None) -> int:
    """Run one CLI command and return the process exit code."""
    out = out or sys.stdout
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    _init_logging(settings.log_level)
    configure_logging(debug_mode=args.debug, base_level=settings.log_level)

    repository = CsvEventRepository(args.data_dir or settings.data_dir)
    try:
        if args.command == "backup":
            path = repository.backup(args.path)
            print(f"Backup written to {path}", file=out)
            return 0
        if args.command == "restore":
            store = repository.restore(args.path, replace=not args.merge)
            print(f"Restored {len(store)} events", file=out)
            return 0

        store = repository.load()
        handlers = {
            "add": lambda: _cmd_add(args, store, out),
            "edit": lambda: _cmd_edit(args, store, out),
            "delete": lambda: _cmd_delete(args, store, out),
            "calendar": lambda: _cmd_calendar(args, store, out),
            "week": lambda: _cmd_week(args, store, out),
            "agenda": lambda: _cmd_agenda(args, store, out),
            "search": lambda: _cmd_search(args, store, out),
            "stats": lambda: _cmd_stats(args, store, out, settings),
            "remind": lambda: _cmd_remind(store, out, settings),
        }
        if handlers[args.command]():
            repository.save(store)
    except CalendarPlannerError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def main() -> NoReturn:
    """Run the calendar_planner CLI."""
    sys.exit(run())


if __name__ == "__main__":
    main()
