"""
Daily log and employee metadata repositories (SQLite).

Upserts are a single INSERT ... ON CONFLICT DO UPDATE statement keyed on the
normalized unique columns, so SQLite serializes concurrent writers and no
in-process lock is taken for these keyspaces. Timestamps are assigned by the
database; created_at is written only by the INSERT branch and updated_at never
moves backwards.

Follows the established database patterns in taskgrid/infrastructure/database.py.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from typing import Protocol

from taskgrid.errors import ConflictError, StoreUnavailableError, TaskValidationError
from taskgrid.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from taskgrid.observability.logging import get_logger
from taskgrid.observability.telemetry import counter
from taskgrid.tasks.dates import validate_date_label
from taskgrid.tasks.models import LogEntry, MetadataEntry, normalize_key

logger = get_logger(__name__)

# Fixed-width UTC timestamp, so MAX() over the text column is chronological.
SQL_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


class LogRepository(Protocol):
    def upsert_log(self, employee_name: str, task_date: str) -> LogEntry: ...

    def list_logs(self) -> list[LogEntry]: ...


class MetadataRepository(Protocol):
    def upsert_metadata(
        self,
        employee_name: str,
        employee_id: str | None = None,
        project_name: str | None = None,
    ) -> MetadataEntry: ...

    def touch_metadata(self, employee_name: str) -> MetadataEntry | None: ...

    def list_metadata(self) -> list[MetadataEntry]: ...


def clean_name(employee_name: str | None) -> str:
    """
    Raises:
        TaskValidationError: If the name is blank
    """
    cleaned = (employee_name or "").strip()
    if not cleaned:
        raise TaskValidationError("employee name is required")
    return cleaned


@contextmanager
def store_errors(operation: str) -> Generator[None, None, None]:
    """Translate sqlite3 failures into the taskgrid error taxonomy."""
    try:
        yield
    except sqlite3.IntegrityError as e:
        logger.error("Constraint violation during %s: %s", operation, e)
        counter("database.conflicts")
        raise ConflictError(f"constraint violation during {operation}") from e
    except (sqlite3.OperationalError, FileNotFoundError) as e:
        logger.error("Database unavailable during %s: %s", operation, e)
        raise StoreUnavailableError(f"database unavailable during {operation}") from e


class SqliteLogRepository:
    """daily_logs table: one row per (employee, day)."""

    def upsert_log(self, employee_name: str, task_date: str) -> LogEntry:
        """
        Insert the (employee, day) log or refresh its updated_at.

        Raises:
            TaskValidationError: Blank name or malformed date label
            ConflictError: Constraint violation not absorbed by the upsert
            StoreUnavailableError: Database unreachable or still locked after retries
        """
        name = clean_name(employee_name)
        date = validate_date_label(task_date)
        with store_errors("upsert_log"):
            row = self._upsert_log(name, date)
        counter("logs.upserts")
        logger.info("Upserted daily log for %s on %s", name, date)
        return LogEntry.from_db_row(dict(row))

    @staticmethod
    @retry_on_db_lock()
    def _upsert_log(name: str, date: str) -> sqlite3.Row:
        with db_transaction() as conn:
            conn.execute(
                f"""
                INSERT INTO daily_logs (
                    employee_key, date_key, employee_name, task_date, created_at, updated_at
                ) VALUES (?, ?, ?, ?, {SQL_NOW}, {SQL_NOW})
                ON CONFLICT(employee_key, date_key) DO UPDATE SET
                    updated_at = MAX(daily_logs.updated_at, excluded.updated_at)
                """,
                (normalize_key(name), normalize_key(date), name, date),
            )
            return conn.execute(
                """
                SELECT employee_name, task_date, created_at, updated_at
                FROM daily_logs
                WHERE employee_key = ? AND date_key = ?
                """,
                (normalize_key(name), normalize_key(date)),
            ).fetchone()

    def get_log(self, employee_name: str, task_date: str) -> LogEntry | None:
        with store_errors("get_log"), get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT employee_name, task_date, created_at, updated_at
                FROM daily_logs
                WHERE employee_key = ? AND date_key = ?
                """,
                (normalize_key(employee_name), normalize_key(task_date)),
            ).fetchone()
        return LogEntry.from_db_row(dict(row)) if row else None

    def list_logs(self) -> list[LogEntry]:
        with store_errors("list_logs"), get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT employee_name, task_date, created_at, updated_at
                FROM daily_logs
                ORDER BY id
                """
            ).fetchall()
        return [LogEntry.from_db_row(dict(row)) for row in rows]


class SqliteMetadataRepository:
    """employees table: one row per employee."""

    def upsert_metadata(
        self,
        employee_name: str,
        employee_id: str | None = None,
        project_name: str | None = None,
    ) -> MetadataEntry:
        """
        Insert the employee or refresh updated_at (and any provided fields).

        The stored display name and created_at are kept from the first insert.
        """
        name = clean_name(employee_name)
        with store_errors("upsert_metadata"):
            row = self._upsert_metadata(name, employee_id, project_name)
        counter("metadata.upserts")
        logger.info("Upserted metadata for %s", name)
        return MetadataEntry.from_db_row(dict(row))

    @staticmethod
    @retry_on_db_lock()
    def _upsert_metadata(
        name: str, employee_id: str | None, project_name: str | None
    ) -> sqlite3.Row:
        with db_transaction() as conn:
            conn.execute(
                f"""
                INSERT INTO employees (
                    employee_key, employee_name, employee_id, project_name, created_at, updated_at
                ) VALUES (?, ?, ?, ?, {SQL_NOW}, {SQL_NOW})
                ON CONFLICT(employee_key) DO UPDATE SET
                    employee_id = COALESCE(excluded.employee_id, employees.employee_id),
                    project_name = COALESCE(excluded.project_name, employees.project_name),
                    updated_at = MAX(employees.updated_at, excluded.updated_at)
                """,
                (normalize_key(name), name, employee_id, project_name),
            )
            return conn.execute(
                """
                SELECT employee_name, employee_id, project_name, created_at, updated_at
                FROM employees
                WHERE employee_key = ?
                """,
                (normalize_key(name),),
            ).fetchone()

    def touch_metadata(self, employee_name: str) -> MetadataEntry | None:
        """Refresh updated_at only; returns None when the employee is unknown."""
        name = clean_name(employee_name)
        with store_errors("touch_metadata"):
            row = self._touch_metadata(name)
        return MetadataEntry.from_db_row(dict(row)) if row else None

    @staticmethod
    @retry_on_db_lock()
    def _touch_metadata(name: str) -> sqlite3.Row | None:
        with db_transaction() as conn:
            conn.execute(
                f"""
                UPDATE employees
                SET updated_at = MAX(updated_at, {SQL_NOW})
                WHERE employee_key = ?
                """,
                (normalize_key(name),),
            )
            return conn.execute(
                """
                SELECT employee_name, employee_id, project_name, created_at, updated_at
                FROM employees
                WHERE employee_key = ?
                """,
                (normalize_key(name),),
            ).fetchone()

    def list_metadata(self) -> list[MetadataEntry]:
        with store_errors("list_metadata"), get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT employee_name, employee_id, project_name, created_at, updated_at
                FROM employees
                ORDER BY id
                """
            ).fetchall()
        return [MetadataEntry.from_db_row(dict(row)) for row in rows]
