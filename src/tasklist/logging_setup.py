# src/tasklist/logging_setup.py

"""
Logging for the console app.

The REPL shares stderr with the rendered task list, so the console handler
only shows what a user can act on. The log file under the data dir keeps
everything, including per-mutation DEBUG lines from the store.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

LOG_FILE_NAME = "tasklist.log"
_LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Own loggers that speak once per mutation or per query switch.
_CHATTY_PREFIXES = (
    "tasklist.tasks.task_store",
    "tasklist.tasks.task_feed",
    "tasklist.core.events",
)


def parse_level(name: object, default: int = logging.WARNING) -> int:
    """Map "debug" / "INFO" / "20" to a logging level; anything else gives `default`."""
    raw = str(name or "").strip()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


class _ConsoleFilter(logging.Filter):
    """
    Console rules:
    - tasklist records pass, except store/feed/channel chatter below WARNING
    - warnings.warn() output ('py.warnings') and third-party records only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name == "tasklist" or name.startswith("tasklist."):
            if name.startswith(_CHATTY_PREFIXES):
                return record.levelno >= logging.WARNING
            return True
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path = ".local/tasklist",
    console_level: int = logging.WARNING,
    file_level: int = logging.DEBUG,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Install a filtered stderr handler and a rotating file handler on the root logger.

    Replaces handlers installed by an earlier call. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleFilter())
    root.addHandler(console)

    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    # asyncio DEBUG output is event loop internals only.
    logging.getLogger("asyncio").setLevel(logging.INFO)
    return log_file
