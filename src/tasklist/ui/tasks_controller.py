# src/tasklist/ui/tasks_controller.py

from __future__ import annotations

"""
Tasks controller.

Translates user intents into store / preference calls and one-shot events.

- Nothing here blocks the caller: every persistence call is launched on the
  application scope and its outcome shows up in the live list or as an event.
- Mutations are not tied to this object's lifetime: close() releases the list
  subscription and the event channel, work already launched still completes.
- Transient UI state (search text, add/edit form) lives in a SavedState bag so a
  replacement controller built from the same bag picks up where this one left off.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import replace
from typing import Any

from ..core.errors import TaskListError, ValidationError
from ..core.events import EventChannel
from ..core.live import LiveValue
from ..core.ports import PreferenceRepo, TaskRepo
from ..core.saved_state import SavedState
from ..core.scope import BackgroundScope
from ..tasks.task_feed import TaskFeed
from ..tasks.task_models import FilterPreferences, SortOrder, Task
from .tasks_events import (
    AddEditResult,
    NavigateBackWithResult,
    NavigateToAddTaskScreen,
    NavigateToDeleteAllCompletedScreen,
    NavigateToEditTaskScreen,
    ShowErrorMessage,
    ShowInvalidInputMessage,
    ShowTaskSavedConfirmationMessage,
    ShowUndoDeleteTaskMessage,
    TasksEvent,
)

logger = logging.getLogger(__name__)

SEARCH_QUERY_KEY = "search_query"
TASK_KEY = "task"
TASK_NAME_KEY = "task_name"
TASK_IMPORTANCE_KEY = "task_importance"

_SAVED_MESSAGES = {
    AddEditResult.ADDED: "Task added",
    AddEditResult.EDITED: "Task updated",
}


def validate_task_name(name: str | None) -> str:
    if name is None or not name.strip():
        raise ValidationError("Name cannot be empty")
    return name


class TasksController:
    def __init__(
        self,
        repo: TaskRepo,
        prefs: PreferenceRepo,
        *,
        app_scope: BackgroundScope,
        saved_state: SavedState | None = None,
    ) -> None:
        self._repo = repo
        self._prefs = prefs
        self._app_scope = app_scope
        self._state = saved_state if saved_state is not None else SavedState()

        self.search_query: LiveValue[str] = self._state.live(SEARCH_QUERY_KEY, "")
        self.preferences: LiveValue[FilterPreferences] = prefs.preferences
        self.events: EventChannel[TasksEvent] = EventChannel("tasks")

        self._feed = TaskFeed(repo, self.search_query, self.preferences, on_error=self._on_feed_error)
        self.tasks: LiveValue[tuple[Task, ...]] = self._feed.tasks

    @property
    def saved_state(self) -> SavedState:
        return self._state

    async def start(self) -> None:
        await self._feed.start()

    async def close(self) -> None:
        await self._feed.close()
        self.events.close()

    # ---- add/edit form state ----

    @property
    def editing_task(self) -> Task | None:
        raw = self._state.get(TASK_KEY)
        return Task.from_dict(raw) if isinstance(raw, dict) else None

    @property
    def task_name(self) -> str:
        return str(self._state.get(TASK_NAME_KEY, "") or "")

    @task_name.setter
    def task_name(self, value: str) -> None:
        self._state.set(TASK_NAME_KEY, value)

    @property
    def task_importance(self) -> bool:
        return bool(self._state.get(TASK_IMPORTANCE_KEY, False))

    @task_importance.setter
    def task_importance(self, value: bool) -> None:
        self._state.set(TASK_IMPORTANCE_KEY, bool(value))

    def _load_form(self, task: Task | None) -> None:
        self._state.set(TASK_KEY, task.to_dict() if task is not None else None)
        self.task_name = task.name if task is not None else ""
        self.task_importance = task.is_important if task is not None else False

    def _clear_form(self) -> None:
        for key in (TASK_KEY, TASK_NAME_KEY, TASK_IMPORTANCE_KEY):
            self._state.remove(key)

    # ---- plumbing ----

    def _send(self, event: TasksEvent) -> None:
        self.events.send(event)

    def _on_feed_error(self, exc: Exception) -> None:
        self._send(ShowErrorMessage(f"Could not load tasks: {exc}"))

    def _launch(self, what: str, job: Callable[[], Coroutine[Any, Any, None]]) -> None:
        async def _guarded() -> None:
            try:
                await job()
            except TaskListError as exc:
                logger.warning("Could not %s: %s", what, exc)
                self._send(ShowErrorMessage(f"Could not {what}: {exc}"))
            except Exception:
                logger.exception("Unexpected failure in %s", what)
                self._send(ShowErrorMessage(f"Could not {what}: internal error"))

        self._app_scope.launch(_guarded(), name=f"tasks:{what}")

    # ---- list screen ----

    def on_search_query_changed(self, text: str) -> None:
        self.search_query.set(text or "")

    def on_sort_order_selected(self, sort_order: SortOrder) -> None:
        self._launch("save sort order", lambda: self._prefs.update_sort_order(sort_order))

    def on_hide_completed_click(self, hide_completed: bool) -> None:
        self._launch("save filter", lambda: self._prefs.update_hide_completed(hide_completed))

    def on_task_selected(self, task: Task) -> None:
        self._load_form(task)
        self._send(NavigateToEditTaskScreen(task))

    def on_task_checked_changed(self, task: Task, is_checked: bool) -> None:
        updated = replace(task, is_completed=is_checked)
        self._launch("update task", lambda: asyncio.to_thread(self._repo.update, updated))

    def on_task_swiped(self, task: Task) -> None:
        async def _job() -> None:
            await asyncio.to_thread(self._repo.delete, task)
            self._send(ShowUndoDeleteTaskMessage(task))

        self._launch("delete task", _job)

    def on_undo_delete_click(self, task: Task) -> None:
        async def _job() -> None:
            await asyncio.to_thread(self._repo.insert, task)

        self._launch("restore task", _job)

    def on_add_new_task_click(self) -> None:
        self._load_form(None)
        self._send(NavigateToAddTaskScreen())

    def on_add_edit_result(self, result: AddEditResult) -> None:
        msg = _SAVED_MESSAGES.get(result)
        if msg:
            self._send(ShowTaskSavedConfirmationMessage(msg))

    def on_delete_all_completed_click(self) -> None:
        self._send(NavigateToDeleteAllCompletedScreen())

    def on_confirm_delete_all_completed(self) -> None:
        async def _job() -> None:
            removed = await asyncio.to_thread(self._repo.delete_all_completed)
            logger.debug("delete_all_completed removed=%d", removed)

        self._launch("delete completed tasks", _job)

    # ---- add/edit screen ----

    def save_edit(self, name: str, is_important: bool, existing: Task | None) -> None:
        try:
            name = validate_task_name(name)
        except ValidationError as exc:
            self._send(ShowInvalidInputMessage(str(exc)))
            return

        if existing is not None:
            updated = replace(existing, name=name, is_important=is_important)

            async def _update() -> None:
                await asyncio.to_thread(self._repo.update, updated)
                self._clear_form()
                self._send(NavigateBackWithResult(AddEditResult.EDITED))

            self._launch("update task", _update)
        else:
            new_task = Task(name=name, is_important=is_important)

            async def _insert() -> None:
                await asyncio.to_thread(self._repo.insert, new_task)
                self._clear_form()
                self._send(NavigateBackWithResult(AddEditResult.ADDED))

            self._launch("add task", _insert)

    def on_save_click(self) -> None:
        self.save_edit(self.task_name, self.task_importance, self.editing_task)
