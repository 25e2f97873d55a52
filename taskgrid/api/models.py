"""Pydantic request/response models for the taskgrid API.

Field names follow the JSON the task tracker frontend already sends
(employee_name, employee_code, tasks[{task, status}], task_date).
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from taskgrid.tasks.models import TaskEntry, TaskStatus

MAX_TASKS_PER_REQUEST = 100
MAX_TASK_LENGTH = 1_000


class TaskItem(BaseModel):
    """One task line as submitted by the client."""

    task: str = Field(..., min_length=1, max_length=MAX_TASK_LENGTH)
    status: str = Field(default=TaskStatus.TODO.value)

    @field_validator("task")
    @classmethod
    def task_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("task text cannot be blank")
        if "\n" in v.strip():
            raise ValueError("task text must be a single line")
        return v.strip()

    def to_entry(self) -> TaskEntry:
        # Unknown status strings are stored as todo
        return TaskEntry(text=self.task, status=TaskStatus.parse(self.status))


class TaskRequest(BaseModel):
    """Status updates for one employee's day cell."""

    employee_name: str = Field(..., max_length=200)
    employee_code: str | None = Field(default=None, max_length=100)
    role: str | None = Field(default=None, max_length=100, description="Target tab")
    task_date: str | None = Field(default=None, max_length=50, description="Day header label")
    tasks: list[TaskItem] = Field(default_factory=list, max_length=MAX_TASKS_PER_REQUEST)


class MetadataRequest(BaseModel):
    employee_name: str = Field(..., max_length=200)
    employee_id: str | None = Field(default=None, max_length=100)
    project_name: str | None = Field(default=None, max_length=200)


class LogRequest(BaseModel):
    employee_name: str = Field(..., max_length=200)
    task_date: str = Field(..., max_length=50)


class TaskUpdateResponse(BaseModel):
    status: str = "success"
    employee_name: str
    sheet: str
    cell: str
    date: str
    tasks: list[TaskEntry]
