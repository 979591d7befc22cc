# src/tasklist/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..prefs.preferences import PreferencesStore
from ..tasks.task_store import TaskStore
from .saved_state import SavedState
from .scope import BackgroundScope


@dataclass
class AppState:
    # Settings object (config.Settings in production, SimpleNamespace in tests).
    settings: Any

    task_store: TaskStore
    preferences: PreferencesStore

    # Process-wide scope: destructive/persistent work launched here outlives any screen.
    app_scope: BackgroundScope = field(default_factory=lambda: BackgroundScope("application"))
    saved_state: SavedState = field(default_factory=SavedState)
