# src/tasklist/tasks/task_models.py

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


def now_ms() -> int:
    return int(time.time() * 1000)


class SortOrder(StrEnum):
    BY_NAME = "BY_NAME"
    BY_DATE = "BY_DATE"

    @classmethod
    def from_raw(cls, raw: object, default: SortOrder | None = None) -> SortOrder:
        """Parse a persisted value; anything unknown maps to the default (BY_DATE)."""
        fallback = default or cls.BY_DATE
        if not isinstance(raw, str) or not raw:
            return fallback
        try:
            return cls(raw.strip().upper())
        except ValueError:
            return fallback


@dataclass(frozen=True, slots=True)
class FilterPreferences:
    sort_order: SortOrder = SortOrder.BY_DATE
    hide_completed: bool = False


@dataclass(frozen=True, slots=True)
class Task:
    """
    One to-do item.

    Immutable: edits are expressed as dataclasses.replace(task, ...) and
    submitted to the store as a full replacement with the same id.
    id is None until the store assigns one.
    """

    name: str
    is_important: bool = False
    is_completed: bool = False
    created_at: int = field(default_factory=now_ms)
    id: int | None = None

    @property
    def created_date_formatted(self) -> str:
        return datetime.fromtimestamp(self.created_at / 1000).strftime("%Y-%m-%d")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "is_important": self.is_important,
            "is_completed": self.is_completed,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        raw_id = data.get("id")
        raw_created = data.get("created_at")
        return cls(
            id=int(raw_id) if raw_id is not None else None,
            name=str(data.get("name") or ""),
            is_important=bool(data.get("is_important", False)),
            is_completed=bool(data.get("is_completed", False)),
            created_at=int(raw_created) if raw_created is not None else now_ms(),
        )
