"""Day-column header labels ("Mon 02-Jan" by default)."""

from __future__ import annotations

from datetime import datetime

from taskgrid.config import HEADER_DATE_FORMAT
from taskgrid.errors import TaskValidationError

# Labels carry no year; parse against a leap year so "29-Feb" is accepted.
_PARSE_YEAR = "2000"


def today_label(now: datetime | None = None, fmt: str = HEADER_DATE_FORMAT) -> str:
    """Header label for the current local day."""
    return (now or datetime.now()).strftime(fmt)


def validate_date_label(label: str | None, fmt: str = HEADER_DATE_FORMAT) -> str:
    """
    Return the trimmed label if it matches the header format.

    Raises:
        TaskValidationError: If the label is empty or malformed
    """
    cleaned = (label or "").strip()
    if not cleaned:
        raise TaskValidationError("task date is required")
    try:
        datetime.strptime(f"{cleaned} {_PARSE_YEAR}", f"{fmt} %Y")
    except ValueError as e:
        raise TaskValidationError(f"malformed date label: {cleaned!r}") from e
    return cleaned
