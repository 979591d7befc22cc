# src/tasklist/core/errors.py

from __future__ import annotations


class TaskListError(Exception):
    """Base class for every failure the task layer reports."""


class ValidationError(TaskListError):
    """User input rejected before anything is persisted (e.g. blank task name)."""


class StorageError(TaskListError):
    """I/O failure in the task database or the preference file."""


class NotFoundError(TaskListError):
    """Update target does not exist in the task store."""

    def __init__(self, task_id: int | None) -> None:
        super().__init__(f"task not found: id={task_id}")
        self.task_id = task_id
