"""
Task merge engine.

Combines the tasks already in a day cell with a batch of reported statuses.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from taskgrid.tasks.models import TaskEntry


def merge_tasks(existing: Sequence[TaskEntry], updates: Iterable[TaskEntry]) -> list[TaskEntry]:
    """
    Merge status updates into an ordered task list.

    For each update in order: a task whose text matches case-insensitively has
    its status replaced in place (text and position unchanged); otherwise the
    update is appended. A text repeated within `updates` ends with the status
    of its last occurrence. Neither input is modified.

    Args:
        existing: Tasks currently in the cell, in line order
        updates: Reported tasks, in request order

    Returns:
        New ordered task list
    """
    merged = list(existing)
    for update in updates:
        for idx, current in enumerate(merged):
            if current.key == update.key:
                merged[idx] = TaskEntry(text=current.text, status=update.status)
                break
        else:
            merged.append(TaskEntry(text=update.text, status=update.status))
    return merged
