"""
Task Service - orchestration of the grid update and read flows.

Update: resolve tab -> resolve row -> resolve day column -> read cell ->
decode -> merge -> encode -> write (one cell write per update).
Read: resolve sources -> fan out per tab -> decode each day cell -> sort.

The service holds no cached grid state; every call reads the store afresh.
Log and metadata bookkeeping is delegated to exactly one repository per
keyspace, picked by TASKGRID_LOG_BACKEND.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from datetime import datetime

from pydantic import BaseModel, Field

from taskgrid.config import (
    ALLOW_BACKDATED_EDITS,
    DEFAULT_SHEET,
    GRID_BACKEND,
    HISTORY_DAYS,
    HISTORY_MAX_WORKERS,
    LOG_BACKEND,
    TARGET_SHEETS,
)
from taskgrid.errors import TaskValidationError
from taskgrid.grid.resolver import (
    ColumnRef,
    RowRef,
    find_or_create_column,
    find_or_create_row,
    resolve_sheet,
)
from taskgrid.grid.store import GridStore
from taskgrid.logs.repository import (
    LogRepository,
    MetadataRepository,
    SqliteLogRepository,
    SqliteMetadataRepository,
)
from taskgrid.observability.logging import get_logger
from taskgrid.observability.telemetry import counter, log_event, time_block
from taskgrid.tasks.cell import decode_cell, encode_cell
from taskgrid.tasks.dates import today_label, validate_date_label
from taskgrid.tasks.history import fetch_all_histories, fetch_employee_history
from taskgrid.tasks.merge import merge_tasks
from taskgrid.tasks.models import EmployeeHistory, LogEntry, MetadataEntry, TaskEntry

logger = get_logger(__name__)


class TaskUpdateResult(BaseModel):
    """Where an update landed and the cell's task list after the merge."""

    employee_name: str
    sheet: str
    row: int
    column: str
    date: str
    column_created: bool = False
    tasks: list[TaskEntry] = Field(default_factory=list)


class SheetLocks:
    """One lock per tab (case-insensitive), created on first use."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def for_sheet(self, sheet: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(sheet.casefold(), threading.Lock())


class TaskService:
    """
    Service layer for the task grid.

    Args:
        store: Grid document store
        logs: Daily log repository
        metadata: Employee metadata repository
        sources: Tabs read by the history flows, in priority order
        default_sheet: Tab written when an update names none
        allow_backdated: Whether past day columns may be edited
        locks: Per-tab locks serializing updates; share one instance between
            services writing the same document
    """

    def __init__(
        self,
        store: GridStore,
        logs: LogRepository,
        metadata: MetadataRepository,
        sources: Sequence[str] = tuple(TARGET_SHEETS),
        default_sheet: str = DEFAULT_SHEET,
        allow_backdated: bool = ALLOW_BACKDATED_EDITS,
        locks: SheetLocks | None = None,
    ):
        self.store = store
        self.logs = logs
        self.metadata = metadata
        self.sources = list(sources)
        self.default_sheet = default_sheet
        self.allow_backdated = allow_backdated
        self.locks = locks or SheetLocks()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_row(self, sheet: str, employee_name: str) -> RowRef:
        info = resolve_sheet(self.store, sheet)
        with self.locks.for_sheet(info.title):
            return find_or_create_row(self.store, info.title, employee_name)

    def resolve_column(self, sheet: str, label: str) -> ColumnRef:
        info = resolve_sheet(self.store, sheet)
        with self.locks.for_sheet(info.title):
            return find_or_create_column(self.store, info, label, self.allow_backdated)

    # ------------------------------------------------------------------
    # Update flow
    # ------------------------------------------------------------------

    def update_tasks(
        self,
        employee_name: str,
        tasks: Sequence[TaskEntry],
        sheet: str | None = None,
        date: str | None = None,
        now: datetime | None = None,
    ) -> TaskUpdateResult:
        """
        Merge status updates into the employee's cell for one day.

        Tasks already in the cell keep their position; matches (by
        case-insensitive text) take the new status and new tasks are
        appended. Defaults: the configured default tab and today's label.

        Raises:
            TaskValidationError: Blank employee name, empty task batch or
                malformed date label
            NotFoundError: Target tab missing, or new row not found on re-read
            EditRestrictedError: Back-dated edit while those are disabled
            CellFormatError: Stored runs cannot be decoded
            StoreUnavailableError: Grid store failure
        """
        name = (employee_name or "").strip()
        if not name:
            raise TaskValidationError("employee name is required")
        if not tasks:
            raise TaskValidationError("at least one task is required")

        label = validate_date_label(date) if (date or "").strip() else today_label(now)

        with time_block("tasks.update"):
            info = resolve_sheet(self.store, sheet or self.default_sheet)
            # Row creation and read-merge-write on one tab run under its lock
            with self.locks.for_sheet(info.title):
                row = find_or_create_row(self.store, info.title, name)
                column = find_or_create_column(self.store, info, label, self.allow_backdated)

                cell = self.store.read_cell(info.title, row.index, column.index)
                existing = decode_cell(cell.text, cell.runs, cell.default_color)
                merged = merge_tasks(existing, tasks)
                encoded = encode_cell(merged)
                self.store.write_cell(
                    info.title, row.index, column.index, encoded.text, encoded.runs
                )

        counter("tasks.updates")
        log_event(
            "tasks.updated",
            sheet=info.title,
            column=column.letter,
            existing=len(existing),
            merged=len(merged),
        )
        logger.info(
            "Updated %d task(s) for %s in %s!%s%d",
            len(tasks),
            row.name,
            info.title,
            column.letter,
            row.index + 1,
        )
        return TaskUpdateResult(
            employee_name=row.name,
            sheet=info.title,
            row=row.index,
            column=column.letter,
            date=label,
            column_created=column.created,
            tasks=merged,
        )

    # ------------------------------------------------------------------
    # Read flows
    # ------------------------------------------------------------------

    def fetch_history(
        self, employee_name: str, max_days: int | None = None
    ) -> list[EmployeeHistory]:
        """
        Raises:
            TaskValidationError: Blank employee name
            NotFoundError: No source tab has a row for the employee
        """
        name = (employee_name or "").strip()
        if not name:
            raise TaskValidationError("employee name is required")
        return fetch_employee_history(
            self.store, self.sources, name, max_days, max_workers=HISTORY_MAX_WORKERS
        )

    def fetch_all(self, max_days: int | None = HISTORY_DAYS) -> list[EmployeeHistory]:
        return fetch_all_histories(
            self.store, self.sources, max_days, max_workers=HISTORY_MAX_WORKERS
        )

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def upsert_log(self, employee_name: str, task_date: str) -> LogEntry:
        return self.logs.upsert_log(employee_name, task_date)

    def upsert_metadata(
        self,
        employee_name: str,
        employee_id: str | None = None,
        project_name: str | None = None,
    ) -> MetadataEntry:
        return self.metadata.upsert_metadata(employee_name, employee_id, project_name)

    def touch_metadata(self, employee_name: str) -> MetadataEntry | None:
        """Refresh updated_at only; None when the employee has no metadata."""
        return self.metadata.touch_metadata(employee_name)

    def list_logs(self) -> list[LogEntry]:
        return self.logs.list_logs()

    def list_metadata(self) -> list[MetadataEntry]:
        return self.metadata.list_metadata()


# Per-keyspace locks for the sheet-backed repositories
_LOG_LOCK = threading.Lock()
_METADATA_LOCK = threading.Lock()


def build_grid_store(backend: str = GRID_BACKEND) -> GridStore:
    """
    Raises:
        ValueError: Unknown backend name
    """
    if backend == "sheets":
        from taskgrid.grid.sheets_client import get_sheets_store

        return get_sheets_store()
    if backend == "memory":
        from taskgrid.grid.memory import InMemoryGridStore

        return InMemoryGridStore()
    raise ValueError(f"Unknown grid backend: {backend!r}")


def build_repositories(
    store: GridStore, backend: str = LOG_BACKEND
) -> tuple[LogRepository, MetadataRepository]:
    """
    One repository per keyspace for the configured backend.

    Raises:
        ValueError: Unknown backend name
    """
    if backend == "sqlite":
        return SqliteLogRepository(), SqliteMetadataRepository()
    if backend == "sheets":
        from taskgrid.logs.sheet_repository import SheetLogRepository, SheetMetadataRepository

        return (
            SheetLogRepository(store, _LOG_LOCK),
            SheetMetadataRepository(store, _METADATA_LOCK),
        )
    raise ValueError(f"Unknown log backend: {backend!r}")


# Singleton instance
_service: TaskService | None = None
_service_lock = threading.Lock()


def get_task_service() -> TaskService:
    """Get or create singleton TaskService instance."""
    global _service
    with _service_lock:
        if _service is None:
            store = build_grid_store()
            logs, metadata = build_repositories(store)
            _service = TaskService(store, logs, metadata)
            logger.info(
                "Task service ready (grid=%s, logs=%s, sources=%s)",
                GRID_BACKEND,
                LOG_BACKEND,
                ",".join(TARGET_SHEETS),
            )
    return _service
