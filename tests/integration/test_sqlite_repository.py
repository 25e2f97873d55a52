"""
Integration tests for the SQLite log and metadata repositories.

Each test runs against a fresh database file (temp_db fixture).
"""

import sqlite3
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from taskgrid.errors import ConflictError, StoreUnavailableError, TaskValidationError
from taskgrid.infrastructure.database import get_db_connection, reset_pool, retry_on_db_lock
from taskgrid.infrastructure.database_schema import validate_schema
from taskgrid.logs.repository import SqliteLogRepository, SqliteMetadataRepository


class TestSchema:
    def test_tables_created(self, temp_db):
        with get_db_connection() as conn:
            assert validate_schema(conn)

    def test_missing_database_is_unavailable(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TASKGRID_DB_PATH", str(tmp_path / "absent.db"))
        reset_pool()
        with pytest.raises(StoreUnavailableError):
            SqliteLogRepository().list_logs()


class TestLogUpsert:
    def test_insert(self, temp_db):
        entry = SqliteLogRepository().upsert_log("Alice", "Mon 02-Jan")

        assert entry.employee_name == "Alice"
        assert entry.task_date == "Mon 02-Jan"
        assert entry.created_at == entry.updated_at
        assert entry.created_at.tzinfo is not None

    def test_second_upsert_keeps_created_at(self, temp_db):
        repo = SqliteLogRepository()
        first = repo.upsert_log("Alice", "Mon 02-Jan")
        time.sleep(0.01)
        second = repo.upsert_log(" alice ", "mon 02-jan")

        assert second.created_at == first.created_at
        assert second.updated_at > first.updated_at
        # Display form is kept from the first insert
        assert second.employee_name == "Alice"
        assert len(repo.list_logs()) == 1

    def test_different_days_are_separate(self, temp_db):
        repo = SqliteLogRepository()
        repo.upsert_log("Alice", "Mon 02-Jan")
        repo.upsert_log("Alice", "Tue 03-Jan")
        repo.upsert_log("Bob", "Mon 02-Jan")
        assert [(e.employee_name, e.task_date) for e in repo.list_logs()] == [
            ("Alice", "Mon 02-Jan"),
            ("Alice", "Tue 03-Jan"),
            ("Bob", "Mon 02-Jan"),
        ]

    def test_get_log(self, temp_db):
        repo = SqliteLogRepository()
        repo.upsert_log("Alice", "Mon 02-Jan")
        assert repo.get_log("ALICE", "Mon 02-Jan").employee_name == "Alice"
        assert repo.get_log("Alice", "Tue 03-Jan") is None

    @pytest.mark.parametrize(
        "name, date",
        [("", "Mon 02-Jan"), ("   ", "Mon 02-Jan"), ("Alice", ""), ("Alice", "2024-01-02")],
    )
    def test_validation(self, temp_db, name, date):
        with pytest.raises(TaskValidationError):
            SqliteLogRepository().upsert_log(name, date)

    def test_concurrent_upserts_single_row(self, temp_db):
        repo = SqliteLogRepository()
        with ThreadPoolExecutor(max_workers=8) as executor:
            entries = list(
                executor.map(lambda _: repo.upsert_log("Alice", "Mon 02-Jan"), range(20))
            )

        created = {entry.created_at for entry in entries}
        assert len(created) == 1
        assert len(repo.list_logs()) == 1

    def test_integrity_error_maps_to_conflict(self, temp_db):
        with patch.object(
            SqliteLogRepository,
            "_upsert_log",
            side_effect=sqlite3.IntegrityError("NOT NULL constraint failed"),
        ):
            with pytest.raises(ConflictError):
                SqliteLogRepository().upsert_log("Alice", "Mon 02-Jan")

    def test_lock_exhaustion_maps_to_unavailable(self, temp_db):
        with patch.object(
            SqliteLogRepository,
            "_upsert_log",
            side_effect=sqlite3.OperationalError("database is locked"),
        ):
            with pytest.raises(StoreUnavailableError):
                SqliteLogRepository().upsert_log("Alice", "Mon 02-Jan")


class TestMetadataUpsert:
    def test_insert_and_refresh(self, temp_db):
        repo = SqliteMetadataRepository()
        first = repo.upsert_metadata("Alice", employee_id="E-1", project_name="Apollo")
        time.sleep(0.01)
        second = repo.upsert_metadata("ALICE")

        assert second.created_at == first.created_at
        assert second.updated_at > first.updated_at
        # Omitted fields keep their stored values
        assert second.employee_id == "E-1"
        assert second.project_name == "Apollo"

    def test_provided_fields_overwrite(self, temp_db):
        repo = SqliteMetadataRepository()
        repo.upsert_metadata("Alice", employee_id="E-1", project_name="Apollo")
        updated = repo.upsert_metadata("Alice", project_name="Gemini")
        assert (updated.employee_id, updated.project_name) == ("E-1", "Gemini")

    def test_touch(self, temp_db):
        repo = SqliteMetadataRepository()
        first = repo.upsert_metadata("Alice")
        time.sleep(0.01)
        touched = repo.touch_metadata(" alice")

        assert touched.created_at == first.created_at
        assert touched.updated_at > first.updated_at

    def test_touch_unknown_is_noop(self, temp_db):
        repo = SqliteMetadataRepository()
        assert repo.touch_metadata("Nobody") is None
        assert repo.list_metadata() == []

    def test_blank_name(self, temp_db):
        with pytest.raises(TaskValidationError):
            SqliteMetadataRepository().upsert_metadata(" ")

    def test_list(self, temp_db):
        repo = SqliteMetadataRepository()
        repo.upsert_metadata("Alice")
        repo.upsert_metadata("Bob", employee_id="E-2")
        listed = repo.list_metadata()
        assert [(m.employee_name, m.employee_id) for m in listed] == [
            ("Alice", None),
            ("Bob", "E-2"),
        ]


def test_retry_decorator_recovers_from_lock():
    call_count = [0]

    @retry_on_db_lock(max_retries=3, base_delay=0.01, max_delay=0.05)
    def flaky_operation():
        call_count[0] += 1
        if call_count[0] < 3:
            raise sqlite3.OperationalError("database is locked")
        return "success"

    assert flaky_operation() == "success"
    assert call_count[0] == 3


def test_retry_decorator_ignores_other_errors():
    call_count = [0]

    @retry_on_db_lock(max_retries=3, base_delay=0.01)
    def broken_query():
        call_count[0] += 1
        raise sqlite3.OperationalError("no such table: nope")

    with pytest.raises(sqlite3.OperationalError, match="no such table"):
        broken_query()
    assert call_count[0] == 1
