# src/tasklist/core/scope.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundScope:
    """
    A named set of asyncio tasks with a shared lifetime.

    - launch() is fire-and-forget; the caller never waits
    - a failing job is logged and does not affect its siblings
    - join() waits for everything launched so far (shutdown path)
    - cancel() stops everything (per-screen teardown)
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._tasks: set[asyncio.Task[Any]] = set()
        self._cancelled = False

    def __len__(self) -> int:
        return len(self._tasks)

    def launch(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task[Any]:
        if self._cancelled:
            coro.close()
            raise RuntimeError(f"scope {self.name} is cancelled")
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Job %s in scope %s failed",
                task.get_name(),
                self.name,
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def join(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel(self) -> None:
        self._cancelled = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


async def cancel_and_await(task: asyncio.Task[Any] | None) -> None:
    if task and not task.done():
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
