"""
Row/column resolution for the task grid.

Rows are matched on the employee name in column A (trimmed, case-insensitive);
columns on the day label in row 1. Creating a row is append-then-reread: the
append call does not return the new row's position, so one extra read of the
name column is the price of locating it.
"""

from __future__ import annotations

from typing import NamedTuple

from taskgrid.config import ALLOW_BACKDATED_EDITS, FIRST_DATA_COLUMN
from taskgrid.errors import EditRestrictedError, NotFoundError, TaskValidationError
from taskgrid.grid.store import GridStore, SheetInfo, column_letter, find_sheet
from taskgrid.observability.logging import get_logger
from taskgrid.observability.telemetry import counter, log_event
from taskgrid.tasks.models import normalize_key

logger = get_logger(__name__)

NAME_COLUMN_INDEX = 0
NAME_HEADER = "Name"


class RowRef(NamedTuple):
    index: int
    name: str  # display form as stored in the grid


class ColumnRef(NamedTuple):
    index: int
    letter: str
    created: bool = False


def names_match(stored: str, wanted: str) -> bool:
    return normalize_key(stored) == normalize_key(wanted)


def resolve_sheet(store: GridStore, title: str) -> SheetInfo:
    """
    Find a tab by title, case-insensitively.

    Raises:
        NotFoundError: If the document has no such tab
    """
    sheet = find_sheet(store.list_sheets(), title)
    if sheet is None:
        raise NotFoundError(f"sheet '{title}' not found")
    return sheet


def match_row(names: list[str], employee_name: str) -> RowRef | None:
    # Row 0 is the date header
    for idx, name in enumerate(names[1:], start=1):
        if name and names_match(name, employee_name):
            return RowRef(idx, name)
    return None


def find_row(store: GridStore, sheet: str, employee_name: str) -> RowRef | None:
    """Read-only lookup of an employee's row."""
    return match_row(store.read_column(sheet, NAME_COLUMN_INDEX), employee_name)


def find_or_create_row(store: GridStore, sheet: str, employee_name: str) -> RowRef:
    """
    Locate the employee's row, appending one with just the name if absent.

    Raises:
        TaskValidationError: If employee_name is blank
        NotFoundError: If the appended row cannot be located on re-read
    """
    cleaned = (employee_name or "").strip()
    if not cleaned:
        raise TaskValidationError("employee name is required")

    names = store.read_column(sheet, NAME_COLUMN_INDEX)
    row = match_row(names, cleaned)
    if row is not None:
        return row

    if not any(names):
        # Keep row 0 for the header so the appended name lands in row 1
        store.write_header(sheet, NAME_COLUMN_INDEX, NAME_HEADER)
    store.append_row(sheet, [cleaned])
    counter("resolver.row_created")
    log_event("resolver.row_created", sheet=sheet)

    row = find_row(store, sheet, cleaned)
    if row is None:
        logger.error("Appended row for %s in %s but could not locate it", cleaned, sheet)
        raise NotFoundError(f"failed to locate employee '{cleaned}' after creation")
    return row


def find_column(header: list[str], label: str) -> int | None:
    """Index of the header cell matching label (case-insensitive), if any."""
    wanted = normalize_key(label)
    for idx, cell in enumerate(header):
        if normalize_key(str(cell)) == wanted:
            return idx
    return None


def find_or_create_column(
    store: GridStore,
    sheet: SheetInfo,
    label: str,
    allow_backdated: bool = ALLOW_BACKDATED_EDITS,
) -> ColumnRef:
    """
    Locate the day column for label, appending it if absent.

    A new column goes right after the last header cell (column B for an empty
    header). The grid is widened by one column first when that index is past
    the tab's column capacity.

    Raises:
        TaskValidationError: If label is blank
        EditRestrictedError: If back-dated edits are disabled and label is not
            the rightmost day column
    """
    cleaned = (label or "").strip()
    if not cleaned:
        raise TaskValidationError("date label is required")

    header = store.read_header(sheet.title)
    index = find_column(header, cleaned)

    if index is not None:
        if not allow_backdated and index != len(header) - 1:
            raise EditRestrictedError(
                f"Only today's column can be edited; '{header[index]}' is a past day"
            )
        return ColumnRef(index, column_letter(index))

    index = len(header) if header else FIRST_DATA_COLUMN

    if index >= sheet.column_count:
        store.expand_columns(sheet.title, 1)
        counter("resolver.grid_expanded")

    store.write_header(sheet.title, index, cleaned)
    counter("resolver.column_created")
    log_event("resolver.column_created", sheet=sheet.title, column=column_letter(index))
    return ColumnRef(index, column_letter(index), created=True)
