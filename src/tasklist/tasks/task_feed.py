# src/tasklist/tasks/task_feed.py

from __future__ import annotations

"""
Task feed.

Combines the search text and the filter preferences into one TaskQuery and keeps
exactly one live repository query running for the latest combination:

- any distinct change of either input cancels the running query and starts a new one
- an unchanged combination is deduplicated and never re-issued
- results are published only by the current generation, so a superseded query
  can never overwrite the list after a newer one became active
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..core.live import LiveValue, Subscription, combine_latest
from ..core.ports import TaskRepo
from ..core.scope import cancel_and_await
from .task_models import FilterPreferences, SortOrder, Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskQuery:
    search: str
    sort_order: SortOrder
    hide_completed: bool


def to_query(search: str, preferences: FilterPreferences) -> TaskQuery:
    return TaskQuery(
        search=search,
        sort_order=preferences.sort_order,
        hide_completed=preferences.hide_completed,
    )


class TaskFeed:
    def __init__(
        self,
        repo: TaskRepo,
        search: LiveValue[str],
        preferences: LiveValue[FilterPreferences],
        *,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self._repo = repo
        self._query = combine_latest(search, preferences, to_query, name="task_feed.query")
        self._on_error = on_error

        self.tasks: LiveValue[tuple[Task, ...]] = LiveValue((), name="task_feed.tasks")
        self.active_query: TaskQuery | None = None

        self._loop: asyncio.AbstractEventLoop | None = None
        self._sub: Subscription | None = None
        self._follower: asyncio.Task[None] | None = None
        self._generation = 0
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    async def start(self) -> None:
        if self._sub is not None or self._closed:
            return
        self._loop = asyncio.get_running_loop()
        self._sub = self._query.subscribe(self._on_query_changed)

    def _on_query_changed(self, _query: TaskQuery) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._switch()
        else:
            loop.call_soon_threadsafe(self._switch)

    def _switch(self) -> None:
        if self._closed or self._loop is None:
            return

        # Re-read: notifications from several threads may arrive out of order.
        query = self._query.value
        if query == self.active_query and self._follower is not None and not self._follower.done():
            return

        self._generation += 1
        if self._follower is not None:
            self._follower.cancel()

        self.active_query = query
        logger.debug("TaskFeed switching to %s (generation=%d)", query, self._generation)
        self._follower = self._loop.create_task(
            self._follow(self._generation, query), name=f"task-feed-{self._generation}"
        )

    async def _follow(self, generation: int, query: TaskQuery) -> None:
        """
        Run the live query for one generation.

        A failed evaluation is reported, then the query is re-issued after the
        next repository change, so the list keeps following mutations.
        """
        loop = asyncio.get_running_loop()
        changed = asyncio.Event()
        sub = self._repo.changes.subscribe(lambda _v: loop.call_soon_threadsafe(changed.set), replay=False)
        try:
            while generation == self._generation:
                changed.clear()
                try:
                    async for tasks in self._repo.query(query.search, query.sort_order, query.hide_completed):
                        if generation != self._generation:
                            return
                        self.tasks.set(tuple(tasks))
                    return
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.exception("TaskFeed query failed query=%s", query)
                    if self._on_error is not None and generation == self._generation:
                        self._on_error(exc)
                await changed.wait()
                logger.debug("TaskFeed retrying query=%s after a change", query)
        finally:
            sub.close()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._sub is not None:
            self._sub.close()
            self._sub = None
        self._query.detach()
        await cancel_and_await(self._follower)
        self._follower = None
