"""In-process grid store

Keeps tabs as lists of CellContent rows. Used for local development
(TASKGRID_GRID_BACKEND=memory) and as the store behind the test-suite. Mirrors
the Sheets behaviours the resolver depends on: writes outside the grid's
column capacity fail, and append_row does not report the new row's index.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from dataclasses import dataclass, field

from taskgrid.errors import NotFoundError, StoreUnavailableError
from taskgrid.grid.store import SheetInfo, find_sheet
from taskgrid.tasks.cell import CellContent, TextRun


@dataclass
class _Tab:
    sheet_id: int
    column_count: int
    rows: list[list[CellContent]] = field(default_factory=list)


class InMemoryGridStore:
    """Thread-safe GridStore over in-memory tabs."""

    def __init__(self, default_column_count: int = 26):
        self.default_column_count = default_column_count
        self._tabs: dict[str, _Tab] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Fixture helpers
    # ------------------------------------------------------------------

    def add_sheet(
        self,
        title: str,
        rows: Sequence[Sequence[str | CellContent]] = (),
        column_count: int | None = None,
    ) -> None:
        """Create a tab seeded with rows of plain text or CellContent."""
        with self._lock:
            tab = _Tab(
                sheet_id=len(self._tabs),
                column_count=column_count or self.default_column_count,
            )
            for row in rows:
                tab.rows.append(
                    [cell if isinstance(cell, CellContent) else CellContent(text=cell or None)
                     for cell in row]
                )
            self._tabs[title] = tab

    def _tab(self, sheet: str) -> _Tab:
        info = find_sheet(self.list_sheets(), sheet)
        if info is None:
            raise NotFoundError(f"sheet '{sheet}' not found")
        return self._tabs[info.title]

    @staticmethod
    def _ensure_cell(tab: _Tab, row: int, column: int) -> None:
        if column >= tab.column_count:
            raise StoreUnavailableError(
                f"Range exceeds grid limits: column {column} >= {tab.column_count}", 400
            )
        while len(tab.rows) <= row:
            tab.rows.append([])
        cells = tab.rows[row]
        while len(cells) <= column:
            cells.append(CellContent())

    # ------------------------------------------------------------------
    # GridStore contract
    # ------------------------------------------------------------------

    def list_sheets(self) -> list[SheetInfo]:
        with self._lock:
            return [
                SheetInfo(title=title, sheet_id=tab.sheet_id, column_count=tab.column_count)
                for title, tab in self._tabs.items()
            ]

    def read_header(self, sheet: str) -> list[str]:
        with self._lock:
            tab = self._tab(sheet)
            if not tab.rows:
                return []
            header = [cell.text or "" for cell in tab.rows[0]]
            while header and not header[-1]:
                header.pop()
            return header

    def read_column(self, sheet: str, column: int) -> list[str]:
        with self._lock:
            tab = self._tab(sheet)
            values = [
                (row[column].text or "") if column < len(row) else "" for row in tab.rows
            ]
            while values and not values[-1]:
                values.pop()
            return values

    def read_values(self, sheet: str, width: int) -> list[list[str]]:
        with self._lock:
            tab = self._tab(sheet)
            table = []
            for row in tab.rows:
                values = [cell.text or "" for cell in row[:width]]
                while values and not values[-1]:
                    values.pop()
                table.append(values)
            while table and not table[-1]:
                table.pop()
            return table

    def read_cell(self, sheet: str, row: int, column: int) -> CellContent:
        with self._lock:
            tab = self._tab(sheet)
            if row < len(tab.rows) and column < len(tab.rows[row]):
                return tab.rows[row][column]
            return CellContent()

    def read_rows(
        self, sheet: str, first_row: int = 0, last_row: int | None = None
    ) -> list[list[CellContent]]:
        with self._lock:
            tab = self._tab(sheet)
            stop = len(tab.rows) if last_row is None else last_row + 1
            return [list(row) for row in tab.rows[first_row:stop]]

    def write_cell(
        self, sheet: str, row: int, column: int, text: str, runs: Sequence[TextRun]
    ) -> None:
        with self._lock:
            tab = self._tab(sheet)
            self._ensure_cell(tab, row, column)
            tab.rows[row][column] = CellContent(text=text or None, runs=tuple(runs))

    def append_row(self, sheet: str, values: Sequence[str]) -> None:
        with self._lock:
            tab = self._tab(sheet)
            last = len(tab.rows)
            while last > 0 and all(cell.is_blank for cell in tab.rows[last - 1]):
                last -= 1
            for column, value in enumerate(values):
                self._ensure_cell(tab, last, column)
                tab.rows[last][column] = CellContent(text=value or None)

    def expand_columns(self, sheet: str, count: int) -> None:
        with self._lock:
            self._tab(sheet).column_count += count

    def write_header(self, sheet: str, column: int, label: str) -> None:
        self.update_values(sheet, 0, column, [label])

    def update_values(self, sheet: str, row: int, column: int, values: Sequence[str]) -> None:
        with self._lock:
            tab = self._tab(sheet)
            for offset, value in enumerate(values):
                self._ensure_cell(tab, row, column + offset)
                existing = tab.rows[row][column + offset]
                tab.rows[row][column + offset] = existing._replace(text=value or None)
