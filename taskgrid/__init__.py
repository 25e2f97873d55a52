"""taskgrid - Work-task tracker backed by a spreadsheet grid"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports for the task and log modules
def __getattr__(name: str):
    """
    Lazy imports to avoid loading the Google client when only importing lightweight modules.
    """
    if name in ("TaskEntry", "TaskStatus", "DayRecord", "EmployeeHistory"):
        from taskgrid.tasks import models

        return getattr(models, name)

    if name in ("decode_cell", "encode_cell"):
        from taskgrid.tasks import cell

        return getattr(cell, name)

    if name == "merge_tasks":
        from taskgrid.tasks.merge import merge_tasks

        return merge_tasks

    if name in ("TaskService", "get_task_service"):
        from taskgrid.tasks import service

        return getattr(service, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "DayRecord",
    "EmployeeHistory",
    "TaskEntry",
    "TaskService",
    "TaskStatus",
    "decode_cell",
    "encode_cell",
    "get_task_service",
    "merge_tasks",
]
