# src/tasklist/ui/tasks_events.py

"""
One-shot events emitted by TasksController.

TasksEvent is a closed union: consumers match on it and end with
`case _: assert_never(event)` so a new variant is flagged by the type checker.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TypeAlias

from ..tasks.task_models import Task


class AddEditResult(StrEnum):
    ADDED = "added"
    EDITED = "edited"


@dataclass(frozen=True, slots=True)
class NavigateToAddTaskScreen:
    pass


@dataclass(frozen=True, slots=True)
class NavigateToEditTaskScreen:
    task: Task


@dataclass(frozen=True, slots=True)
class ShowUndoDeleteTaskMessage:
    task: Task


@dataclass(frozen=True, slots=True)
class ShowTaskSavedConfirmationMessage:
    msg: str


@dataclass(frozen=True, slots=True)
class NavigateToDeleteAllCompletedScreen:
    pass


@dataclass(frozen=True, slots=True)
class ShowInvalidInputMessage:
    msg: str


@dataclass(frozen=True, slots=True)
class NavigateBackWithResult:
    result: AddEditResult


@dataclass(frozen=True, slots=True)
class ShowErrorMessage:
    msg: str


TasksEvent: TypeAlias = (
    NavigateToAddTaskScreen
    | NavigateToEditTaskScreen
    | ShowUndoDeleteTaskMessage
    | ShowTaskSavedConfirmationMessage
    | NavigateToDeleteAllCompletedScreen
    | ShowInvalidInputMessage
    | NavigateBackWithResult
    | ShowErrorMessage
)
