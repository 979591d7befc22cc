# src/tasklist/prefs/preferences.py

"""
Preference store.

A tiny durable key-value file (JSON) holding the list settings:
- sort_order: "BY_NAME" | "BY_DATE"
- hide_completed: bool

Reads never fail: a missing, unreadable or malformed file means defaults.
Writes go through a temp file + os.replace and raise StorageError on failure.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any

from ..core.errors import StorageError
from ..core.live import LiveValue
from ..tasks.task_models import FilterPreferences, SortOrder

logger = logging.getLogger(__name__)

SORT_ORDER_KEY = "sort_order"
HIDE_COMPLETED_KEY = "hide_completed"


def to_filter_preferences(data: dict[str, Any]) -> FilterPreferences:
    hide_raw = data.get(HIDE_COMPLETED_KEY)
    return FilterPreferences(
        sort_order=SortOrder.from_raw(data.get(SORT_ORDER_KEY)),
        hide_completed=hide_raw if isinstance(hide_raw, bool) else False,
    )


class PreferencesStore:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._data = self._read()
        self._live: LiveValue[FilterPreferences] = LiveValue(
            to_filter_preferences(self._data), name="preferences"
        )
        logger.info("PreferencesStore ready path=%s prefs=%s", self._path, self._live.value)

    @property
    def preferences(self) -> LiveValue[FilterPreferences]:
        return self._live

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.warning("Error reading preferences from %s; using defaults", self._path, exc_info=True)
            return {}
        if not isinstance(data, dict):
            logger.warning("Preferences file %s is not a JSON object; using defaults", self._path)
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
        except OSError as exc:
            raise StorageError(f"cannot write preferences to {self._path}: {exc}") from exc

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._data.get(key)

    def _set_sync(self, key: str, value: Any) -> None:
        with self._lock:
            data = dict(self._data)
            data[key] = value
            self._write(data)
            self._data = data
            # Publish under the lock so the live value follows write order.
            self._live.set(to_filter_preferences(data))

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._set_sync, key, value)
        logger.debug("Preference %s=%r saved", key, value)

    async def update_sort_order(self, sort_order: SortOrder) -> None:
        await self.set(SORT_ORDER_KEY, SortOrder(sort_order).value)

    async def update_hide_completed(self, hide_completed: bool) -> None:
        await self.set(HIDE_COMPLETED_KEY, bool(hide_completed))
