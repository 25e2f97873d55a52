"""
Task tracker domain models.

A day cell in the grid holds several task lines; each line becomes a
TaskEntry. DayRecord and EmployeeHistory are the read-side groupings returned
to callers. LogEntry and MetadataEntry are the persisted bookkeeping records.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def normalize_key(value: str) -> str:
    """Comparison key for names and date labels: trimmed and lower-cased."""
    return value.strip().lower()


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse a stored timestamp (ISO 8601 / RFC 3339) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class TaskStatus(str, Enum):
    """Completion state of a single task line."""

    TODO = "todo"
    PENDING = "pending"
    COMPLETE = "complete"

    @classmethod
    def parse(cls, value: Any) -> TaskStatus:
        """Lenient parse: unknown or missing values fall back to TODO."""
        if isinstance(value, TaskStatus):
            return value
        if value is None:
            return cls.TODO
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.TODO


class TaskEntry(BaseModel):
    """One task line of a day cell."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Task text, trimmed")
    status: TaskStatus = Field(default=TaskStatus.TODO)

    @field_validator("text")
    @classmethod
    def text_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("task text cannot be empty")
        if "\n" in v.strip():
            raise ValueError("task text must be a single line")
        return v.strip()

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> TaskStatus:
        return TaskStatus.parse(v)

    @property
    def key(self) -> str:
        """Merge identity of the task."""
        return self.text.casefold()


class DayRecord(BaseModel):
    """One day's tasks grouped by status, each list in original line order."""

    date: str
    todo: list[str] = Field(default_factory=list)
    pending: list[str] = Field(default_factory=list)
    complete: list[str] = Field(default_factory=list)

    @classmethod
    def from_entries(cls, date: str, entries: list[TaskEntry]) -> DayRecord:
        record = cls(date=date)
        for entry in entries:
            if entry.status == TaskStatus.COMPLETE:
                record.complete.append(entry.text)
            elif entry.status == TaskStatus.PENDING:
                record.pending.append(entry.text)
            else:
                record.todo.append(entry.text)
        return record

    @property
    def is_empty(self) -> bool:
        return not (self.todo or self.pending or self.complete)


class EmployeeHistory(BaseModel):
    """Recent day records for one employee from one grid source."""

    employee_name: str
    source: str
    history: list[DayRecord] = Field(default_factory=list)


class LogEntry(BaseModel):
    """Per-employee, per-day bookkeeping record."""

    employee_name: str
    task_date: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> LogEntry:
        return cls(
            employee_name=row["employee_name"],
            task_date=row["task_date"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )


class MetadataEntry(BaseModel):
    """Per-employee bookkeeping record."""

    employee_name: str
    employee_id: str | None = None
    project_name: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> MetadataEntry:
        return cls(
            employee_name=row["employee_name"],
            employee_id=row.get("employee_id") or None,
            project_name=row.get("project_name") or None,
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )
