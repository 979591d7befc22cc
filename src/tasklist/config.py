# src/tasklist/config.py

"""Settings for the tasklist app, read from TASKLIST_* environment variables.

A `.env` file in the working directory is loaded first; real environment
variables win over it. Every setting has a working default and a value that
cannot be parsed falls back to that default, so a bad variable never stops
the app from starting.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKLIST"
DEFAULT_DATA_DIR = Path(".local/tasklist")

_TRUE = frozenset({"1", "true", "yes", "y", "on"})
_FALSE = frozenset({"0", "false", "no", "n", "off"})
_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

load_dotenv(override=False)


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


class _Env:
    """Typed lookups over one environment mapping."""

    def __init__(self, environ: Mapping[str, str]) -> None:
        self._environ = environ

    def raw(self, suffix: str) -> str | None:
        v = self._environ.get(_k(suffix))
        if v is None or v.strip() == "":
            return None
        return v.strip()

    def text(self, suffix: str, default: str) -> str:
        return self.raw(suffix) or default

    def flag(self, suffix: str, default: bool) -> bool:
        v = (self.raw(suffix) or "").lower()
        if v in _TRUE:
            return True
        if v in _FALSE:
            return False
        return default

    def path(self, suffix: str, default: Path) -> Path:
        v = self.raw(suffix)
        return default if v is None else Path(v).expanduser()

    def level(self, suffix: str, default: str) -> str:
        v = (self.raw(suffix) or "").upper()
        return v if v in _LEVELS else default


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data (keep out of git) ----
    data_dir: Path
    tasks_db_path: Path
    preferences_path: Path
    saved_state_path: Path

    # ---- Behaviour ----
    seed_demo_tasks: bool
    save_ui_state: bool

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "Settings":
        env = _Env(os.environ if environ is None else environ)
        data_dir = env.path("DATA_DIR", DEFAULT_DATA_DIR)

        return Settings(
            app_name=env.text("APP_NAME", "tasklist"),
            log_level=env.level("LOG_LEVEL", "WARNING"),
            data_dir=data_dir,
            # File locations default to the data dir but can be moved one by one.
            tasks_db_path=env.path("TASKS_DB_PATH", data_dir / "tasks.sqlite3"),
            preferences_path=env.path("PREFERENCES_PATH", data_dir / "preferences.json"),
            saved_state_path=env.path("SAVED_STATE_PATH", data_dir / "saved_state.json"),
            seed_demo_tasks=env.flag("SEED_DEMO_TASKS", True),
            save_ui_state=env.flag("SAVE_UI_STATE", True),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
