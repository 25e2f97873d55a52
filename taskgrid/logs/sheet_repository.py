"""
Daily log and employee metadata repositories kept as tabs of the grid document.

The grid has no conditional write, so each keyspace is guarded by a lock held
across the read-check-write sequence. The lock is injected so every repository
instance writing the same tab shares it; it only covers writers in this
process.

Tab layouts (row 1 is a header):
    database_logs: Name | Date | Created | Updated
    database:      Name | ID | Project | Created | Updated
"""

from __future__ import annotations

import threading
from datetime import datetime

from taskgrid.config import SHEET_DB_EMPLOYEES, SHEET_DB_LOGS
from taskgrid.grid.store import GridStore
from taskgrid.logs.repository import clean_name
from taskgrid.observability.logging import get_logger
from taskgrid.observability.telemetry import counter
from taskgrid.tasks.dates import validate_date_label
from taskgrid.tasks.models import (
    LogEntry,
    MetadataEntry,
    normalize_key,
    parse_timestamp,
    utc_now,
)

logger = get_logger(__name__)

LOG_HEADER = ["Name", "Date", "Created", "Updated"]
EMPLOYEE_HEADER = ["Name", "ID", "Project", "Created", "Updated"]


def format_timestamp(value: datetime) -> str:
    """RFC 3339 UTC timestamp with millisecond precision."""
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def later_timestamp(previous: str) -> str:
    """Now, or the stored value when the clock reads earlier than it."""
    now = utc_now()
    try:
        stored = parse_timestamp(previous)
    except ValueError:
        logger.warning("Unparseable stored timestamp %r, overwriting", previous)
        stored = None
    if stored is not None and stored > now:
        return previous
    return format_timestamp(now)


def _cell(row: list[str], index: int) -> str:
    return row[index] if index < len(row) else ""


def ensure_header(store: GridStore, sheet: str, header: list[str]) -> None:
    """Write the header row into an empty tab so appends land below it."""
    if not store.read_header(sheet):
        store.update_values(sheet, 0, 0, header)
        logger.info("Initialized header of %s tab", sheet)


class SheetLogRepository:
    """Daily logs in the database_logs tab."""

    def __init__(
        self,
        store: GridStore,
        lock: threading.Lock,
        sheet: str = SHEET_DB_LOGS,
    ):
        self.store = store
        self.lock = lock
        self.sheet = sheet

    def _data_rows(self) -> list[list[str]]:
        # Row 0 is the header.
        return self.store.read_values(self.sheet, len(LOG_HEADER))[1:]

    def upsert_log(self, employee_name: str, task_date: str) -> LogEntry:
        """
        Insert the (employee, day) log or refresh its Updated column.

        Raises:
            TaskValidationError: Blank name or malformed date label
        """
        name = clean_name(employee_name)
        date = validate_date_label(task_date)
        name_key, date_key = normalize_key(name), normalize_key(date)

        with self.lock:
            ensure_header(self.store, self.sheet, LOG_HEADER)
            for offset, row in enumerate(self._data_rows()):
                if (
                    normalize_key(_cell(row, 0)) == name_key
                    and normalize_key(_cell(row, 1)) == date_key
                ):
                    updated = later_timestamp(_cell(row, 3))
                    self.store.update_values(self.sheet, offset + 1, 3, [updated])
                    entry = [_cell(row, 0), _cell(row, 1), _cell(row, 2), updated]
                    break
            else:
                now = format_timestamp(utc_now())
                entry = [name, date, now, now]
                self.store.append_row(self.sheet, entry)
                counter("logs.created")

        counter("logs.upserts")
        logger.info("Upserted daily log for %s on %s", name, date)
        return LogEntry(
            employee_name=entry[0],
            task_date=entry[1],
            created_at=parse_timestamp(entry[2]),
            updated_at=parse_timestamp(entry[3]),
        )

    def list_logs(self) -> list[LogEntry]:
        """Every log row; short or blank rows are skipped."""
        logs = []
        for row in self._data_rows():
            if len(row) < len(LOG_HEADER) or not row[0]:
                continue
            logs.append(
                LogEntry(
                    employee_name=row[0],
                    task_date=row[1],
                    created_at=parse_timestamp(row[2]),
                    updated_at=parse_timestamp(row[3]),
                )
            )
        return logs


class SheetMetadataRepository:
    """Employee metadata in the database tab."""

    def __init__(
        self,
        store: GridStore,
        lock: threading.Lock,
        sheet: str = SHEET_DB_EMPLOYEES,
    ):
        self.store = store
        self.lock = lock
        self.sheet = sheet

    def _data_rows(self) -> list[list[str]]:
        return self.store.read_values(self.sheet, len(EMPLOYEE_HEADER))[1:]

    def _find(self, name: str) -> tuple[int, list[str]] | None:
        key = normalize_key(name)
        for offset, row in enumerate(self._data_rows()):
            if normalize_key(_cell(row, 0)) == key:
                return offset + 1, row
        return None

    @staticmethod
    def _entry(row: list[str]) -> MetadataEntry:
        return MetadataEntry(
            employee_name=_cell(row, 0),
            employee_id=_cell(row, 1) or None,
            project_name=_cell(row, 2) or None,
            created_at=parse_timestamp(_cell(row, 3)),
            updated_at=parse_timestamp(_cell(row, 4)),
        )

    def upsert_metadata(
        self,
        employee_name: str,
        employee_id: str | None = None,
        project_name: str | None = None,
    ) -> MetadataEntry:
        """Insert the employee or refresh Updated plus any provided ID/Project."""
        name = clean_name(employee_name)

        with self.lock:
            ensure_header(self.store, self.sheet, EMPLOYEE_HEADER)
            found = self._find(name)
            if found is None:
                now = format_timestamp(utc_now())
                row = [name, employee_id or "", project_name or "", now, now]
                self.store.append_row(self.sheet, row)
                counter("metadata.created")
            else:
                index, existing = found
                row = [
                    _cell(existing, 0),
                    employee_id if employee_id is not None else _cell(existing, 1),
                    project_name if project_name is not None else _cell(existing, 2),
                    _cell(existing, 3),
                    later_timestamp(_cell(existing, 4)),
                ]
                self.store.update_values(self.sheet, index, 1, row[1:])

        counter("metadata.upserts")
        logger.info("Upserted metadata for %s", name)
        return self._entry(row)

    def touch_metadata(self, employee_name: str) -> MetadataEntry | None:
        """Refresh Updated only; a no-op returning None for unknown employees."""
        name = clean_name(employee_name)

        with self.lock:
            found = self._find(name)
            if found is None:
                logger.info("No metadata row for %s, nothing to touch", name)
                return None
            index, existing = found
            row = list(existing) + [""] * (len(EMPLOYEE_HEADER) - len(existing))
            row[4] = later_timestamp(row[4])
            self.store.update_values(self.sheet, index, 4, [row[4]])

        return self._entry(row)

    def list_metadata(self) -> list[MetadataEntry]:
        """Every employee row; short or blank rows are skipped."""
        return [
            self._entry(row)
            for row in self._data_rows()
            if len(row) >= len(EMPLOYEE_HEADER) and row[0]
        ]
