"""
History aggregation across grid sources.

A source is one tab of the document (e.g. "DEV", "Managers"). Each source is
read independently on a bounded thread pool; results land in a thread-safe
collector and are sorted after the join, since completion order is arbitrary.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed

from taskgrid.config import FIRST_DATA_COLUMN, HISTORY_DAYS, HISTORY_MAX_WORKERS
from taskgrid.errors import NotFoundError
from taskgrid.grid.resolver import find_row
from taskgrid.grid.store import GridStore, find_sheet
from taskgrid.observability.logging import get_logger
from taskgrid.observability.telemetry import counter, log_event, time_block
from taskgrid.tasks.cell import CellContent, decode_day
from taskgrid.tasks.models import DayRecord, EmployeeHistory

logger = get_logger(__name__)

UNKNOWN_DATE = "Unknown"


class _Collector:
    """Lock-guarded accumulator shared by the fan-out workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[tuple[int, EmployeeHistory]] = []

    def extend(self, order: int, items: Sequence[EmployeeHistory]) -> None:
        with self._lock:
            self._items.extend((order, item) for item in items)

    def sorted(self) -> list[EmployeeHistory]:
        with self._lock:
            ordered = sorted(self._items, key=lambda pair: (pair[1].employee_name, pair[0]))
        return [item for _, item in ordered]


def history_from_row(
    header: Sequence[str],
    cells: Sequence[CellContent],
    max_days: int | None = None,
) -> list[DayRecord]:
    """
    Decode a row's day cells, most recent column first.

    Empty cells are skipped and do not count towards max_days.
    """
    history: list[DayRecord] = []
    for idx in range(len(cells) - 1, FIRST_DATA_COLUMN - 1, -1):
        if max_days is not None and len(history) >= max_days:
            break
        cell = cells[idx]
        if cell.is_blank:
            continue
        date = str(header[idx]) if idx < len(header) and header[idx] else UNKNOWN_DATE
        history.append(decode_day(date, cell))
    return history


def resolve_sources(store: GridStore, titles: Sequence[str]) -> list[str]:
    """Actual tab titles for the requested sources; missing tabs are skipped."""
    sheets = store.list_sheets()
    resolved = []
    for title in titles:
        sheet = find_sheet(sheets, title)
        if sheet is None:
            logger.warning("Source sheet %s not found, skipping", title)
            continue
        resolved.append(sheet.title)
    return resolved


def fetch_sheet_history(
    store: GridStore,
    sheet: str,
    employee_name: str,
    max_days: int | None = None,
) -> EmployeeHistory | None:
    """History for one employee in one tab, or None if the tab has no such row."""
    header = store.read_header(sheet)
    if not header:
        return None

    row = find_row(store, sheet, employee_name)
    if row is None:
        return None

    rows = store.read_rows(sheet, row.index, row.index)
    cells = rows[0] if rows else []
    return EmployeeHistory(
        employee_name=row.name,
        source=sheet,
        history=history_from_row(header, cells, max_days),
    )


def fetch_sheet_histories(
    store: GridStore,
    sheet: str,
    max_days: int | None = HISTORY_DAYS,
) -> list[EmployeeHistory]:
    """History for every named row of one tab, read in a single grid call."""
    rows = store.read_rows(sheet)
    if not rows:
        return []

    header = [cell.text or "" for cell in rows[0]]
    employees = []
    for cells in rows[1:]:
        if not cells or cells[0].is_blank:
            continue
        employees.append(
            EmployeeHistory(
                employee_name=cells[0].text,
                source=sheet,
                history=history_from_row(header, cells, max_days),
            )
        )
    return employees


def _fan_out(
    sources: Sequence[str],
    fetch: Callable[[str], list[EmployeeHistory]],
    max_workers: int,
) -> list[EmployeeHistory]:
    collector = _Collector()

    def run(order: int, source: str) -> None:
        collector.extend(order, fetch(source))

    errors: list[Exception] = []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(sources)))) as executor:
        future_to_source = {
            executor.submit(run, order, source): source for order, source in enumerate(sources)
        }
        for future in as_completed(future_to_source):
            source = future_to_source[future]
            try:
                future.result()
            except Exception as exc:
                logger.error("History fetch failed for source %s: %s", source, exc)
                log_event("history.source_error", source=source, error=str(exc))
                counter("history.source_errors")
                errors.append(exc)

    if errors:
        raise errors[0]
    return collector.sorted()


def fetch_employee_history(
    store: GridStore,
    sources: Sequence[str],
    employee_name: str,
    max_days: int | None = None,
    max_workers: int = HISTORY_MAX_WORKERS,
) -> list[EmployeeHistory]:
    """
    One employee's history from every source that has a row for them.

    Raises:
        NotFoundError: If no source has a row for the employee
    """
    titles = resolve_sources(store, sources)

    def fetch(sheet: str) -> list[EmployeeHistory]:
        found = fetch_sheet_history(store, sheet, employee_name, max_days)
        return [found] if found is not None else []

    with time_block("history.employee"):
        results = _fan_out(titles, fetch, max_workers) if titles else []

    if not results:
        raise NotFoundError(
            f"employee '{employee_name}' not found in {' or '.join(sources) or 'any'} sheets"
        )
    counter("history.employee_reads")
    return results


def fetch_all_histories(
    store: GridStore,
    sources: Sequence[str],
    max_days: int | None = HISTORY_DAYS,
    max_workers: int = HISTORY_MAX_WORKERS,
) -> list[EmployeeHistory]:
    """Latest max_days non-empty days for every employee in every source."""
    titles = resolve_sources(store, sources)
    if not titles:
        return []

    with time_block("history.all"):
        results = _fan_out(
            titles, lambda sheet: fetch_sheet_histories(store, sheet, max_days), max_workers
        )
    counter("history.all_reads")
    return results
