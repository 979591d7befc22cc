# src/tasklist/core/saved_state.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any, TypeVar

from .live import LiveValue

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SavedState:
    """
    Small key-value bag of UI state that must outlive a controller object.

    Values must be JSON-serializable. live(key, default) returns a LiveValue that
    stays in sync with the bag, so writes through either side are checkpointed.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})
        self._live: dict[str, LiveValue[Any]] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        live = self._live.get(key)
        if live is not None:
            live.set(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def live(self, key: str, default: T) -> LiveValue[T]:
        existing = self._live.get(key)
        if existing is not None:
            return existing

        live: LiveValue[T] = LiveValue(self._data.get(key, default), name=f"saved_state.{key}")
        self._data.setdefault(key, default)

        def _store(value: T) -> None:
            self._data[key] = value

        live.subscribe(_store, replay=False)
        self._live[key] = live
        return live

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SavedState:
        return cls(data)


def load_saved_state(path: str | Path) -> SavedState:
    """Restore a checkpoint (best-effort: anything unreadable means an empty bag)."""
    path = Path(path)
    if not path.exists():
        return SavedState()
    try:
        data = json.loads(path.read_text("utf-8"))
    except (OSError, ValueError):
        logger.exception("Failed to load saved UI state from %s", path)
        return SavedState()
    if not isinstance(data, dict):
        return SavedState()
    logger.info("Loaded saved UI state: %d keys from %s", len(data), path)
    return SavedState.from_dict(data)


def save_saved_state(state: SavedState, path: str | Path) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(state.to_dict(), ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, path)
        with contextlib.suppress(OSError):
            os.chmod(path, 0o600)
        logger.info("Saved UI state: %d keys to %s", len(state.to_dict()), path)
    except (OSError, TypeError, ValueError):
        logger.exception("Failed to save UI state to %s", path)
