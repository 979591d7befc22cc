# src/tasklist/cli/bootstrap.py

"""
Composition root.

Builds the one AppState the console runs against: the SQLite task store
(seeded with demo tasks on first creation when enabled), the JSON preference
store, the application scope and the saved UI state from the last run.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import get_settings
from ..core.saved_state import SavedState, load_saved_state, save_saved_state
from ..core.state import AppState
from ..prefs.preferences import PreferencesStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    paths: list[Path] = [
        settings.data_dir,
        settings.tasks_db_path.parent,
        settings.preferences_path.parent,
        settings.saved_state_path.parent,
    ]
    for p in dict.fromkeys(paths):
        p.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """Wire AppState from `settings` (the process-wide Settings when omitted)."""
    settings = settings or get_settings()
    _ensure_local_dirs(settings)

    task_store = TaskStore(settings.tasks_db_path, seed=bool(settings.seed_demo_tasks))
    preferences = PreferencesStore(settings.preferences_path)

    if settings.save_ui_state:
        saved_state = load_saved_state(settings.saved_state_path)
    else:
        saved_state = SavedState()

    logger.debug(
        "AppState ready db=%s prefs=%s ui_state_keys=%d",
        settings.tasks_db_path,
        settings.preferences_path,
        len(saved_state.to_dict()),
    )
    return AppState(
        settings=settings,
        task_store=task_store,
        preferences=preferences,
        saved_state=saved_state,
    )


def checkpoint_ui_state(state: AppState) -> None:
    """Write the saved UI state for the next run (no-op when disabled)."""
    if state.settings.save_ui_state:
        save_saved_state(state.saved_state, state.settings.saved_state_path)
