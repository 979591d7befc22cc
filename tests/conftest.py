# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasklist.core.state import AppState
from tasklist.prefs.preferences import PreferencesStore
from tasklist.tasks.task_store import TaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Settings stand-in with every path under tmp_path.

    A SimpleNamespace (not config.Settings) so tests can flip single flags and
    never see TASKLIST_* variables from the developer's shell or .env.
    """
    return SimpleNamespace(
        app_name="tasklist-test",
        log_level="WARNING",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        preferences_path=tmp_path / "preferences.json",
        saved_state_path=tmp_path / "saved_state.json",
        seed_demo_tasks=False,
        save_ui_state=True,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def prefs(settings: SimpleNamespace) -> PreferencesStore:
    return PreferencesStore(settings.preferences_path)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore, prefs: PreferencesStore) -> AppState:
    """
    AppState wired with the real SQLite task store and JSON preference store,
    since their behaviour is part of what we want to test.
    """
    return AppState(settings=settings, task_store=store, preferences=prefs)
