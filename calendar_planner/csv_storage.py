"""CSV persistence, backup and restore for an EventStore.

Three files live in the data directory:

- ``event.csv``: eventId,title,description,startDateTime,endDateTime
- ``recurrent.csv``: eventId,recurrentInterval,recurrentTimes,recurrentEndDate
- ``reminder.csv``: eventId,minutesBefore

Every file starts with a header row. Saves go through a temporary file in the
same directory that is then replaced into place, so a failed save never leaves
a half-written file behind.
"""

from __future__ import annotations

import contextlib
import csv
import io
import logging
import os
import tempfile
from collections.abc import Iterable, Iterator
from datetime import datetime
from pathlib import Path

from .event_store import EventStore
from .exceptions import CalendarPlannerError, StorageError
from .models import Event
from .recurrence import RecurrenceRule

logger = logging.getLogger(__name__)

EVENT_FILE = "event.csv"
RECURRENCE_FILE = "recurrent.csv"
REMINDER_FILE = "reminder.csv"

EVENT_HEADER = ["eventId", "title", "description", "startDateTime", "endDateTime"]
RECURRENCE_HEADER = ["eventId", "recurrentInterval", "recurrentTimes", "recurrentEndDate"]
REMINDER_HEADER = ["eventId", "minutesBefore"]

EVENTS_SECTION = "#EVENTS"
RECURRENCES_SECTION = "#RECURRENCES"
REMINDERS_SECTION = "#REMINDERS"


# Keep the default "\r\n" terminator: fields holding either character get quoted.
def _format_row(fields: Iterable[object]) -> str:
    buffer = io.StringIO()
    csv.writer(buffer).writerow(fields)
    return buffer.getvalue()


def _read_records(path: Path) -> list[list[str]]:
    """Return the non-empty CSV records of a file, header included.

    Quoted fields may span lines and keep their line breaks as written.
    """
    if not path.exists():
        logger.debug("Data file not found; treating as empty: %s", path)
        return []
    try:
        with path.open("r", encoding="utf-8", newline="") as fh:
            return [row for row in csv.reader(fh) if row]
    except (OSError, csv.Error) as exc:
        raise StorageError(f"Unable to read {path.name}: {exc}") from exc


class CsvEventRepository:
    """Loads and saves an EventStore as CSV files in a data directory."""

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)
        self.event_file = self.data_dir / EVENT_FILE
        self.recurrence_file = self.data_dir / RECURRENCE_FILE
        self.reminder_file = self.data_dir / REMINDER_FILE

    def _ensure_data_dir(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Unable to create data directory {self.data_dir}: {exc}") from exc

    def _read_rows(self, path: Path) -> Iterator[list[str]]:
        """Yield the data rows of a CSV file, skipping its header."""
        yield from _read_records(path)[1:]

    def load(self) -> EventStore:
        """Read all three files into a fresh EventStore.

        Short or malformed rows are logged and skipped. The identifier counter
        starts after the highest identifier found.

        Raises:
            StorageError: If a file exists but cannot be read
        """
        self._ensure_data_dir()
        store = EventStore()

        for row in self._read_rows(self.event_file):
            if len(row) < 5:
                logger.warning("Skipping short event row in %s: %r", EVENT_FILE, row)
                continue
            try:
                event = Event(
                    id=int(row[0]),
                    title=row[1],
                    description=row[2],
                    start=datetime.fromisoformat(row[3]),
                    end=datetime.fromisoformat(row[4]),
                )
            except ValueError as exc:
                logger.warning("Skipping malformed event row in %s: %r (%s)", EVENT_FILE, row, exc)
                continue
            store.add_event(event)

        for row in self._read_rows(self.recurrence_file):
            if len(row) < 4:
                logger.warning("Skipping short recurrence row in %s: %r", RECURRENCE_FILE, row)
                continue
            try:
                rule = RecurrenceRule.parse(int(row[0]), row[1], int(row[2]), row[3])
            except (ValueError, CalendarPlannerError) as exc:
                logger.warning(
                    "Skipping malformed recurrence row in %s: %r (%s)", RECURRENCE_FILE, row, exc
                )
                continue
            if store.find_event(rule.event_id) is None:
                logger.debug("Dropping recurrence for unknown event %s", rule.event_id)
                continue
            store.set_recurrence(rule)

        for row in self._read_rows(self.reminder_file):
            if len(row) < 2:
                logger.warning("Skipping short reminder row in %s: %r", REMINDER_FILE, row)
                continue
            try:
                store.set_reminder_minutes(int(row[0]), int(row[1]))
            except (ValueError, CalendarPlannerError) as exc:
                logger.warning(
                    "Skipping malformed reminder row in %s: %r (%s)", REMINDER_FILE, row, exc
                )

        logger.info(
            "Loaded %d events, %d recurrences, %d reminders from %s",
            len(store),
            len(store.list_recurrences()),
            store.reminder_count(),
            self.data_dir,
        )
        return store

    def save(self, store: EventStore) -> None:
        """Write the store to the three CSV files.

        Raises:
            StorageError: If a file cannot be replaced, e.g. because another
                program has it open
        """
        self._ensure_data_dir()

        event_rows = [
            [e.id, e.title, e.description, e.start.isoformat(), e.end.isoformat()]
            for e in store.list_events()
        ]
        recurrence_rows = [
            [r.event_id, r.to_interval_text(), r.times, r.to_end_date_text()]
            for r in store.list_recurrences()
        ]
        reminder_rows = [[event_id, minutes] for event_id, minutes in store.reminders().items()]

        self._write_atomic(self.event_file, [EVENT_HEADER, *event_rows])
        self._write_atomic(self.recurrence_file, [RECURRENCE_HEADER, *recurrence_rows])
        self._write_atomic(self.reminder_file, [REMINDER_HEADER, *reminder_rows])
        logger.info("Saved %d events to %s", len(event_rows), self.data_dir)

    def _write_atomic(self, path: Path, rows: Iterable[Iterable[object]]) -> None:
        self._replace_file(path, "".join(_format_row(row) for row in rows))

    def _replace_file(self, path: Path, content: str) -> None:
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                dir=path.parent,
                prefix=f"{path.name}.",
                suffix=".tmp",
                delete=False,
                encoding="utf-8",
                newline="",
            ) as tf:
                tmp_path = Path(tf.name)
                tf.write(content)
                tf.flush()
                with contextlib.suppress(OSError):
                    os.fsync(tf.fileno())
            tmp_path.replace(path)
        except OSError as exc:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            raise StorageError(
                f"Unable to save {path.name}. Please close any program using the file and try again."
            ) from exc

    def backup(self, backup_file: str | Path) -> Path:
        """Copy the current data files into one sectioned backup file.

        Each section starts with its marker row followed by the file's CSV
        records, header included.

        Returns:
            Path of the written backup
        """
        target = Path(backup_file)
        sections = (
            (EVENTS_SECTION, self.event_file),
            (RECURRENCES_SECTION, self.recurrence_file),
            (REMINDERS_SECTION, self.reminder_file),
        )
        rows: list[list[object]] = []
        for marker, path in sections:
            rows.append([marker])
            rows.extend(_read_records(path))

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Unable to write backup {target}: {exc}") from exc
        self._write_atomic(target, rows)
        logger.info("Wrote backup to %s", target)
        return target

    def restore(self, backup_file: str | Path, replace: bool = True) -> EventStore:
        """Restore data files from a backup and reload them.

        Args:
            backup_file: Backup written by backup()
            replace: Overwrite the data files when True, otherwise append the
                backed-up records to them

        Returns:
            A freshly loaded EventStore

        Raises:
            StorageError: If the backup cannot be read or the files cannot be written
        """
        source = Path(backup_file)
        if not source.exists():
            raise StorageError(f"Backup file not found: {source}")

        sections: dict[str, list[list[str]]] = {
            EVENTS_SECTION: [],
            RECURRENCES_SECTION: [],
            REMINDERS_SECTION: [],
        }
        current = None
        for row in _read_records(source):
            if len(row) == 1 and row[0] in sections:
                current = row[0]
                continue
            if current is not None:
                sections[current].append(row)

        self._ensure_data_dir()
        targets = (
            (self.event_file, sections[EVENTS_SECTION]),
            (self.recurrence_file, sections[RECURRENCES_SECTION]),
            (self.reminder_file, sections[REMINDERS_SECTION]),
        )
        for path, rows in targets:
            if replace:
                self._write_atomic(path, rows)
            else:
                self._append_records(path, rows)

        logger.info("Restored data from %s (replace=%s)", source, replace)
        return self.load()

    def _append_records(self, path: Path, rows: list[list[str]]) -> None:
        if not rows:
            return
        existing = _read_records(path)
        if existing and existing[0] == rows[0]:
            rows = rows[1:]
        self._write_atomic(path, [*existing, *rows])
