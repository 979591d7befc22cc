# tests/fakes.py

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from dataclasses import replace
from typing import Any

from tasklist.core.errors import NotFoundError, StorageError
from tasklist.core.live import LiveValue
from tasklist.prefs.preferences import HIDE_COMPLETED_KEY, SORT_ORDER_KEY, to_filter_preferences
from tasklist.tasks.task_models import FilterPreferences, SortOrder, Task


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until predicate() holds; fail the test if it never does."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


class FakeTaskRepo:
    """
    In-memory TaskRepo used for controller and feed unit tests.

    Records every call so tests can assert that nothing reached the repository.
    """

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self.tasks: dict[int, Task] = {}
        self.calls: list[tuple[str, Any]] = []
        self.queries: list[tuple[str, SortOrder, bool]] = []
        self.changes: LiveValue[int] = LiveValue(0)
        self._next_id = 1
        for t in tasks or []:
            self._put(t)

    def _put(self, task: Task) -> Task:
        if task.id is None:
            task = replace(task, id=self._next_id)
        self._next_id = max(self._next_id, int(task.id) + 1)
        self.tasks[int(task.id)] = task
        return task

    def get_tasks(self, search: str, sort_order: SortOrder, hide_completed: bool) -> list[Task]:
        out = [
            t
            for t in self.tasks.values()
            if search in t.name and (not hide_completed or not t.is_completed)
        ]
        if sort_order == SortOrder.BY_NAME:
            out.sort(key=lambda t: (not t.is_important, t.name, t.id))
        else:
            out.sort(key=lambda t: (not t.is_important, t.created_at, t.id))
        return out

    async def query(
        self, search: str, sort_order: SortOrder, hide_completed: bool
    ) -> AsyncIterator[list[Task]]:
        self.queries.append((search, sort_order, hide_completed))
        loop = asyncio.get_running_loop()
        changed = asyncio.Event()
        sub = self.changes.subscribe(lambda _v: loop.call_soon_threadsafe(changed.set), replay=False)
        try:
            while True:
                changed.clear()
                yield self.get_tasks(search, sort_order, hide_completed)
                await changed.wait()
        finally:
            sub.close()

    def insert(self, task: Task) -> Task:
        self.calls.append(("insert", task))
        stored = self._put(task)
        self.changes.update(lambda n: n + 1)
        return stored

    def update(self, task: Task) -> None:
        self.calls.append(("update", task))
        if task.id is None or task.id not in self.tasks:
            raise NotFoundError(task.id)
        self.tasks[task.id] = task
        self.changes.update(lambda n: n + 1)

    def delete(self, task: Task) -> bool:
        self.calls.append(("delete", task))
        removed = task.id is not None and self.tasks.pop(task.id, None) is not None
        if removed:
            self.changes.update(lambda n: n + 1)
        return removed

    def delete_all_completed(self) -> int:
        self.calls.append(("delete_all_completed", None))
        done = [k for k, t in self.tasks.items() if t.is_completed]
        for k in done:
            del self.tasks[k]
        if done:
            self.changes.update(lambda n: n + 1)
        return len(done)


class GatedTaskRepo(FakeTaskRepo):
    """
    Each query generation waits for an explicit release before yielding its first
    result, so tests control the order in which in-flight queries resolve.
    """

    def __init__(self, tasks: list[Task] | None = None) -> None:
        super().__init__(tasks)
        self.gates: dict[str, asyncio.Event] = {}
        self.finished: list[str] = []

    def gate(self, search: str) -> asyncio.Event:
        return self.gates.setdefault(search, asyncio.Event())

    async def query(
        self, search: str, sort_order: SortOrder, hide_completed: bool
    ) -> AsyncIterator[list[Task]]:
        self.queries.append((search, sort_order, hide_completed))
        try:
            await self.gate(search).wait()
            yield self.get_tasks(search, sort_order, hide_completed)
            await asyncio.Event().wait()
        finally:
            self.finished.append(search)


class FakePreferences:
    """PreferenceRepo kept in memory; fail_writes simulates a broken disk."""

    def __init__(self, initial: FilterPreferences | None = None, *, fail_writes: bool = False) -> None:
        prefs = initial or FilterPreferences()
        self.data: dict[str, Any] = {
            SORT_ORDER_KEY: prefs.sort_order.value,
            HIDE_COMPLETED_KEY: prefs.hide_completed,
        }
        self.fail_writes = fail_writes
        self._live: LiveValue[FilterPreferences] = LiveValue(prefs)

    @property
    def preferences(self) -> LiveValue[FilterPreferences]:
        return self._live

    def get(self, key: str) -> Any | None:
        return self.data.get(key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.sleep(0)
        if self.fail_writes:
            raise StorageError("disk full")
        self.data[key] = value
        self._live.set(to_filter_preferences(self.data))

    async def update_sort_order(self, sort_order: SortOrder) -> None:
        await self.set(SORT_ORDER_KEY, sort_order.value)

    async def update_hide_completed(self, hide_completed: bool) -> None:
        await self.set(HIDE_COMPLETED_KEY, hide_completed)
