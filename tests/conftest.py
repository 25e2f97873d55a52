"""
Pytest configuration for taskgrid tests

Provides fixtures and configuration shared across all test files
"""

import os
import tempfile
from pathlib import Path

import pytest

# The API module initializes the database at import time; keep it off the
# package data directory.
os.environ.setdefault(
    "TASKGRID_DB_PATH", str(Path(tempfile.mkdtemp(prefix="taskgrid-tests-")) / "taskgrid.db")
)

from taskgrid.grid.memory import InMemoryGridStore  # noqa: E402
from taskgrid.infrastructure.database import init_database, reset_pool  # noqa: E402
from taskgrid.observability import telemetry  # noqa: E402
from taskgrid.tasks.cell import CellContent, TextRun  # noqa: E402
from taskgrid.tasks.codec import COMPLETE_COLOR, PENDING_COLOR  # noqa: E402


@pytest.fixture(autouse=True)
def reset_telemetry():
    """Start every test with empty counters"""
    telemetry.reset()
    yield
    telemetry.reset()


@pytest.fixture
def grid_store():
    """
    In-memory grid with a DEV and a Managers tab.

    DEV:      Name | Mon 01-Jan | Tue 02-Jan
              Alice | (Fix bug=complete, Write docs=todo) | (Deploy=pending)
              Bob   | (Review PR=todo) |
    Managers: Name | Mon 01-Jan
              Carol | (Plan sprint=complete)
    """
    store = InMemoryGridStore()
    store.add_sheet(
        "DEV",
        [
            ["Name", "Mon 01-Jan", "Tue 02-Jan"],
            [
                "Alice",
                CellContent(
                    "Fix bug\nWrite docs",
                    (TextRun(0, COMPLETE_COLOR), TextRun(8, None)),
                ),
                CellContent("Deploy", (TextRun(0, PENDING_COLOR),)),
            ],
            ["Bob", "Review PR"],
        ],
    )
    store.add_sheet(
        "Managers",
        [
            ["Name", "Mon 01-Jan"],
            ["Carol", CellContent("Plan sprint", (TextRun(0, COMPLETE_COLOR),))],
        ],
    )
    return store


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Fresh SQLite database per test, with the global pool pointed at it"""
    db_path = tmp_path / "taskgrid.db"
    monkeypatch.setenv("TASKGRID_DB_PATH", str(db_path))
    reset_pool()
    init_database()
    yield db_path
    reset_pool()
