"""
Bookkeeping endpoints: employee metadata and per-day logs.

Both POST routes are idempotent upserts; repeating one only moves updated_at.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from taskgrid.api.models import LogRequest, MetadataRequest
from taskgrid.errors import NotFoundError
from taskgrid.tasks.models import LogEntry, MetadataEntry
from taskgrid.tasks.service import TaskService, get_task_service

router = APIRouter(tags=["logs"])


@router.get("/metadata", response_model=list[MetadataEntry])
def get_metadata(service: TaskService = Depends(get_task_service)) -> list[MetadataEntry]:
    return service.list_metadata()


@router.post("/metadata", response_model=MetadataEntry)
def upsert_metadata(
    request: MetadataRequest,
    service: TaskService = Depends(get_task_service),
) -> MetadataEntry:
    return service.upsert_metadata(
        request.employee_name,
        employee_id=request.employee_id,
        project_name=request.project_name,
    )


@router.post("/metadata/{employee_name}/touch", response_model=MetadataEntry)
def touch_metadata(
    employee_name: str,
    service: TaskService = Depends(get_task_service),
) -> MetadataEntry:
    entry = service.touch_metadata(employee_name)
    if entry is None:
        raise NotFoundError(f"no metadata for employee {employee_name!r}")
    return entry


@router.get("/logs", response_model=list[LogEntry])
def get_daily_logs(service: TaskService = Depends(get_task_service)) -> list[LogEntry]:
    return service.list_logs()


@router.post("/logs", response_model=LogEntry)
def upsert_daily_log(
    request: LogRequest,
    service: TaskService = Depends(get_task_service),
) -> LogEntry:
    return service.upsert_log(request.employee_name, request.task_date)
