"""
Database schema initialization for taskgrid.

Uniqueness is enforced on normalized key columns (trimmed, lower-cased), so
"Alice" and " alice " resolve to the same record while the display form is
kept as first written.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from taskgrid.observability.logging import get_logger

logger = get_logger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS employees (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        employee_key TEXT NOT NULL UNIQUE,
        employee_name TEXT NOT NULL,
        employee_id TEXT,
        project_name TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS daily_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        employee_key TEXT NOT NULL,
        date_key TEXT NOT NULL,
        employee_name TEXT NOT NULL,
        task_date TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE(employee_key, date_key)
    );

    CREATE INDEX IF NOT EXISTS idx_daily_logs_updated
    ON daily_logs(updated_at);
"""

REQUIRED_TABLES = ("employees", "daily_logs")


def init_database(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Side Effects:
    - Creates parent directory if needed
    - Creates tables and indexes if they don't exist
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(SCHEMA)
        conn.commit()
    finally:
        conn.close()

    logger.info("Database schema ready at %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Validate database has expected tables

    Raises:
        ValueError: If tables are missing
    """
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    existing = {row[0] for row in rows}
    missing = [table for table in REQUIRED_TABLES if table not in existing]
    if missing:
        raise ValueError(f"Missing tables: {', '.join(missing)}")
    return True
