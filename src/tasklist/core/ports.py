# src/tasklist/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The controller and the feed depend on Protocols instead of concrete implementations.
This keeps storage swappable and makes testing easier.
"""

from collections.abc import AsyncIterator
from typing import Any, Protocol

from ..tasks.task_models import FilterPreferences, SortOrder, Task
from .live import LiveValue


class TaskRepo(Protocol):
    # Bumped after every committed mutation
    changes: LiveValue[int]

    # Live list (consumed by TaskFeed)
    def query(
            self,
            search: str,
            sort_order: SortOrder,
            hide_completed: bool,
    ) -> AsyncIterator[list[Task]]: ...

    # Mutations (called from the controller via asyncio.to_thread)
    def insert(self, task: Task) -> Task: ...
    def update(self, task: Task) -> None: ...
    def delete(self, task: Task) -> bool: ...
    def delete_all_completed(self) -> int: ...


class PreferenceRepo(Protocol):
    """Durable key-value store for the two list settings."""

    @property
    def preferences(self) -> LiveValue[FilterPreferences]: ...

    def get(self, key: str) -> Any | None: ...
    async def set(self, key: str, value: Any) -> None: ...
    async def update_sort_order(self, sort_order: SortOrder) -> None: ...
    async def update_hide_completed(self, hide_completed: bool) -> None: ...
