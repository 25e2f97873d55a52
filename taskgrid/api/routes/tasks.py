"""
Task grid endpoints.

- GET  /employee/{name}/tasks - one employee's full history across source tabs
- GET  /employees/tasks       - latest days for every employee
- POST /task                  - merge task status updates into today's cell

Handlers are sync so the blocking grid calls run on the worker threadpool.
Domain errors propagate to the handlers registered in taskgrid.api.app.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from taskgrid.api.models import TaskRequest, TaskUpdateResponse
from taskgrid.config import HISTORY_DAYS
from taskgrid.errors import TaskValidationError
from taskgrid.observability.logging import get_logger
from taskgrid.tasks.models import EmployeeHistory
from taskgrid.tasks.service import TaskService, get_task_service

router = APIRouter(tags=["tasks"])
logger = get_logger(__name__)


@router.get("/employee/{name}/tasks", response_model=list[EmployeeHistory])
def get_employee_tasks(
    name: str,
    service: TaskService = Depends(get_task_service),
) -> list[EmployeeHistory]:
    """All non-empty days for one employee, most recent first, per source tab."""
    return service.fetch_history(name)


@router.get("/employees/tasks", response_model=list[EmployeeHistory])
def get_all_employee_tasks(
    days: int = Query(default=HISTORY_DAYS, ge=1, le=366),
    service: TaskService = Depends(get_task_service),
) -> list[EmployeeHistory]:
    """Latest non-empty days for every employee, sorted by name."""
    return service.fetch_all(max_days=days)


@router.post("/task", response_model=TaskUpdateResponse)
def post_task_update(
    request: TaskRequest,
    service: TaskService = Depends(get_task_service),
) -> TaskUpdateResponse:
    """
    Merge the submitted tasks into the employee's cell.

    Existing tasks keep their order and colour; matches take the new status
    and unknown tasks are appended.
    """
    if not request.employee_name.strip() or not request.tasks:
        raise TaskValidationError("Employee name and at least one task are required")

    result = service.update_tasks(
        request.employee_name,
        [item.to_entry() for item in request.tasks],
        sheet=request.role,
        date=request.task_date,
    )
    return TaskUpdateResponse(
        employee_name=result.employee_name,
        sheet=result.sheet,
        cell=f"{result.column}{result.row + 1}",
        date=result.date,
        tasks=result.tasks,
    )
