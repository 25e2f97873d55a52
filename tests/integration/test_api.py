"""
API tests: routes, request validation and error-to-status mapping.

The task service is swapped for one backed by the in-memory grid through
FastAPI dependency overrides.
"""

import threading

import pytest
from fastapi.testclient import TestClient

from taskgrid.api.app import app
from taskgrid.errors import ConflictError, StoreUnavailableError
from taskgrid.logs.repository import SqliteLogRepository, SqliteMetadataRepository
from taskgrid.logs.sheet_repository import (
    EMPLOYEE_HEADER,
    LOG_HEADER,
    SheetLogRepository,
    SheetMetadataRepository,
)
from taskgrid.tasks.service import TaskService, get_task_service


@pytest.fixture
def service(grid_store):
    grid_store.add_sheet("database_logs", [LOG_HEADER])
    grid_store.add_sheet("database", [EMPLOYEE_HEADER])
    return TaskService(
        grid_store,
        SheetLogRepository(grid_store, threading.Lock()),
        SheetMetadataRepository(grid_store, threading.Lock()),
        sources=["DEV", "Managers"],
        default_sheet="DEV",
        allow_backdated=True,
    )


@pytest.fixture
def client(service):
    app.dependency_overrides[get_task_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestTaskRoutes:
    def test_employee_tasks(self, client):
        response = client.get("/employee/alice/tasks")

        assert response.status_code == 200
        data = response.json()
        assert data[0]["employee_name"] == "Alice"
        assert data[0]["source"] == "DEV"
        assert data[0]["history"][0] == {
            "date": "Tue 02-Jan",
            "todo": [],
            "pending": ["Deploy"],
            "complete": [],
        }

    def test_employee_not_found(self, client):
        response = client.get("/employee/Zed/tasks")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_all_employees(self, client):
        response = client.get("/employees/tasks", params={"days": 1})
        assert response.status_code == 200
        assert [e["employee_name"] for e in response.json()] == ["Alice", "Bob", "Carol"]

    def test_post_task(self, client, grid_store):
        response = client.post(
            "/task",
            json={
                "employee_name": "Alice",
                "employee_code": "E-1",
                "task_date": "Mon 01-Jan",
                "tasks": [
                    {"task": "Write docs", "status": "complete"},
                    {"task": "New thing", "status": "bogus"},
                ],
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["cell"] == "B2"
        assert data["tasks"] == [
            {"text": "Fix bug", "status": "complete"},
            {"text": "Write docs", "status": "complete"},
            {"text": "New thing", "status": "todo"},
        ]
        assert grid_store.read_cell("DEV", 1, 1).text == "Fix bug\nWrite docs\nNew thing"

    def test_post_task_role(self, client):
        response = client.post(
            "/task",
            json={
                "employee_name": "Carol",
                "role": "Managers",
                "task_date": "Mon 01-Jan",
                "tasks": [{"task": "Hiring", "status": "pending"}],
            },
        )
        assert response.status_code == 200
        assert response.json()["sheet"] == "Managers"

    def test_post_task_unknown_role(self, client):
        response = client.post(
            "/task",
            json={"employee_name": "Carol", "role": "QA", "tasks": [{"task": "x"}]},
        )
        assert response.status_code == 404

    @pytest.mark.parametrize(
        "payload",
        [
            {"employee_name": "Alice", "tasks": []},
            {"employee_name": "  ", "tasks": [{"task": "x"}]},
        ],
    )
    def test_post_task_requires_name_and_tasks(self, client, payload):
        response = client.post("/task", json=payload)
        assert response.status_code == 400

    def test_post_task_malformed(self, client):
        response = client.post("/task", json={"tasks": [{"task": ""}]})
        assert response.status_code == 422
        assert "employee_name" in response.json()["invalid_fields"]

    def test_post_task_blank_date_uses_today(self, client):
        response = client.post(
            "/task",
            json={"employee_name": "Alice", "task_date": "", "tasks": [{"task": "x"}]},
        )
        assert response.status_code == 200

    def test_post_task_multiline_text_rejected(self, client, grid_store):
        payload = {
            "employee_name": "Bob",
            "task_date": "Mon 01-Jan",
            "tasks": [{"task": "Line one\nLine two", "status": "complete"}],
        }

        response = client.post("/task", json=payload)

        assert response.status_code == 422
        assert "task" in response.json()["invalid_fields"]
        assert grid_store.read_cell("DEV", 2, 1).text == "Review PR"

    def test_post_task_malformed_date(self, client, grid_store):
        response = client.post(
            "/task",
            json={"employee_name": "Alice", "task_date": "not a date", "tasks": [{"task": "x"}]},
        )

        assert response.status_code == 400
        assert grid_store.read_header("DEV") == ["Name", "Mon 01-Jan", "Tue 02-Jan"]


class TestBookkeepingRoutes:
    def test_logs_round_trip(self, client):
        first = client.post("/logs", json={"employee_name": "Alice", "task_date": "Mon 02-Jan"})
        second = client.post("/logs", json={"employee_name": "alice", "task_date": "Mon 02-Jan"})

        assert first.status_code == 200
        assert second.json()["created_at"] == first.json()["created_at"]
        listed = client.get("/logs").json()
        assert len(listed) == 1
        assert listed[0]["employee_name"] == "Alice"

    def test_log_bad_date(self, client):
        response = client.post("/logs", json={"employee_name": "Alice", "task_date": "soon"})
        assert response.status_code == 400

    def test_metadata_round_trip(self, client):
        response = client.post(
            "/metadata",
            json={"employee_name": "Alice", "employee_id": "E-1", "project_name": "Apollo"},
        )
        assert response.status_code == 200
        listed = client.get("/metadata").json()
        assert [(m["employee_name"], m["employee_id"]) for m in listed] == [("Alice", "E-1")]

    def test_touch_metadata(self, client):
        client.post("/metadata", json={"employee_name": "Alice", "employee_id": "E-1"})

        response = client.post("/metadata/alice/touch")

        assert response.status_code == 200
        assert response.json()["employee_id"] == "E-1"

    def test_touch_unknown_metadata_is_404(self, client):
        response = client.post("/metadata/nobody/touch")
        assert response.status_code == 404

    def test_conflict_maps_to_409(self, client, service, monkeypatch):
        def conflict(*args, **kwargs):
            raise ConflictError("constraint violation during upsert_log")

        monkeypatch.setattr(service.logs, "upsert_log", conflict)
        response = client.post("/logs", json={"employee_name": "Alice", "task_date": "Mon 02-Jan"})
        assert response.status_code == 409

    def test_store_unavailable_maps_to_503(self, client, service, monkeypatch):
        def unavailable(*args, **kwargs):
            raise StoreUnavailableError("Sheets API error during read_rows", 500)

        monkeypatch.setattr(service.store, "read_rows", unavailable)
        response = client.get("/employees/tasks")
        assert response.status_code == 503


def test_sqlite_backed_logs(temp_db, grid_store):
    service = TaskService(grid_store, SqliteLogRepository(), SqliteMetadataRepository())
    app.dependency_overrides[get_task_service] = lambda: service
    try:
        client = TestClient(app)
        response = client.post("/metadata", json={"employee_name": "Alice"})
        assert response.status_code == 200
        assert client.get("/metadata").json()[0]["employee_name"] == "Alice"
    finally:
        app.dependency_overrides.clear()


def test_health():
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
