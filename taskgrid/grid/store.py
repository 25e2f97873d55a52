"""
Grid document store contract.

The task tracker keeps one tab per team; in each tab column A holds employee
names, row 1 holds day labels, and every other cell holds that employee's
tasks for that day. All row and column indices here are 0-based.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from taskgrid.tasks.cell import CellContent, TextRun


@dataclass(frozen=True)
class SheetInfo:
    """Tab metadata needed for grid-size checks and batch requests."""

    title: str
    sheet_id: int
    column_count: int
    row_count: int = 1000


@runtime_checkable
class GridStore(Protocol):
    def list_sheets(self) -> list[SheetInfo]: ...

    def read_header(self, sheet: str) -> list[str]: ...

    def read_column(self, sheet: str, column: int) -> list[str]: ...

    def read_values(self, sheet: str, width: int) -> list[list[str]]: ...

    def read_cell(self, sheet: str, row: int, column: int) -> CellContent: ...

    def read_rows(
        self, sheet: str, first_row: int = 0, last_row: int | None = None
    ) -> list[list[CellContent]]: ...

    def write_cell(
        self, sheet: str, row: int, column: int, text: str, runs: Sequence[TextRun]
    ) -> None: ...

    def append_row(self, sheet: str, values: Sequence[str]) -> None: ...

    def expand_columns(self, sheet: str, count: int) -> None: ...

    def write_header(self, sheet: str, column: int, label: str) -> None: ...

    def update_values(self, sheet: str, row: int, column: int, values: Sequence[str]) -> None: ...


def column_letter(index: int) -> str:
    """0-based column index to A1 letters (0 -> "A", 2 -> "C", 26 -> "AA")."""
    if index < 0:
        raise ValueError(f"column index must be >= 0, got {index}")
    n = index + 1
    name = ""
    while n > 0:
        n, remainder = divmod(n - 1, 26)
        name = chr(ord("A") + remainder) + name
    return name


def quote_sheet(title: str) -> str:
    return "'" + title.replace("'", "''") + "'"


def a1_range(sheet: str, ref: str) -> str:
    """Sheet-qualified A1 range, e.g. a1_range("DEV", "A:A") -> "'DEV'!A:A"."""
    return f"{quote_sheet(sheet)}!{ref}"


def cell_ref(row: int, column: int) -> str:
    return f"{column_letter(column)}{row + 1}"


def find_sheet(sheets: Sequence[SheetInfo], title: str) -> SheetInfo | None:
    """Case-insensitive tab lookup, returning the tab's actual title."""
    wanted = title.strip().lower()
    for sheet in sheets:
        if sheet.title.strip().lower() == wanted:
            return sheet
    return None
