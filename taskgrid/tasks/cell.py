"""
Day cell codec.

A day cell is multi-line text plus a sparse list of text format runs. Each run
starts at a character offset and its colour holds until the next run starts.
Offsets are counted in UTF-16 code units, which is how the Sheets API indexes
text format runs (identical to character counts for BMP text).

decode_cell() turns (text, runs) into ordered TaskEntry objects;
encode_cell() produces the text and the minimal run list for a task list.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

from taskgrid.errors import CellFormatError
from taskgrid.tasks.codec import Color, ColorStatusMapping, default_mapping
from taskgrid.tasks.models import DayRecord, TaskEntry

LINE_SEPARATOR = "\n"


class TextRun(NamedTuple):
    """Formatting run: colour applies from start_index up to the next run."""

    start_index: int
    color: Color | None = None


class EncodedCell(NamedTuple):
    text: str
    runs: list[TextRun]


class CellContent(NamedTuple):
    """Raw cell as read from the grid store."""

    text: str | None = None
    runs: tuple[TextRun, ...] = ()
    default_color: Color | None = None

    @property
    def is_blank(self) -> bool:
        return not self.text


def text_length(text: str) -> int:
    """Length of text in UTF-16 code units."""
    return len(text.encode("utf-16-le")) // 2


def _check_sorted(runs: Sequence[TextRun]) -> None:
    for previous, current in zip(runs, runs[1:]):
        if current.start_index < previous.start_index:
            raise CellFormatError(
                f"Text format runs are not sorted: start {current.start_index} "
                f"follows start {previous.start_index}"
            )


def decode_cell(
    text: str | None,
    runs: Sequence[TextRun] = (),
    default_color: Color | None = None,
    mapping: ColorStatusMapping | None = None,
) -> list[TaskEntry]:
    """
    Decode cell text and runs into ordered task entries.

    Blank lines produce no entry. When the cell has no runs, default_color (the
    cell-wide text colour) classifies every line.

    Raises:
        CellFormatError: If runs are not sorted ascending by start_index
    """
    if not text:
        return []

    mapping = mapping or default_mapping()
    runs = list(runs)
    _check_sorted(runs)

    entries: list[TaskEntry] = []
    offset = 0
    run_pos = 0
    active: Color | None = default_color if not runs else None

    for line in text.split(LINE_SEPARATOR):
        while run_pos < len(runs) and runs[run_pos].start_index <= offset:
            active = runs[run_pos].color
            run_pos += 1

        stripped = line.strip()
        if stripped:
            entries.append(TaskEntry(text=stripped, status=mapping.classify(active)))

        offset += text_length(line) + 1

    return entries


def encode_cell(
    entries: Sequence[TaskEntry],
    mapping: ColorStatusMapping | None = None,
) -> EncodedCell:
    """Join task texts with line breaks and emit one run per task."""
    mapping = mapping or default_mapping()

    runs: list[TextRun] = []
    offset = 0
    for entry in entries:
        runs.append(TextRun(offset, mapping.color_for(entry.status)))
        offset += text_length(entry.text) + 1

    return EncodedCell(LINE_SEPARATOR.join(entry.text for entry in entries), runs)


def decode_day(
    date: str, cell: CellContent, mapping: ColorStatusMapping | None = None
) -> DayRecord:
    """Decode one cell straight into a DayRecord for the given header label."""
    entries = decode_cell(cell.text, cell.runs, cell.default_color, mapping)
    return DayRecord.from_entries(date, entries)
