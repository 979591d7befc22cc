# src/tasklist/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, runs the console REPL, then waits for
every job on the application scope before checkpointing UI state and exiting.
"""

from __future__ import annotations

import asyncio
import logging

from ..cli.bootstrap import checkpoint_ui_state, create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import parse_level, setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        checkpoint_ui_state(state)
    except Exception:
        logger.exception("Failed to save UI state.")

    # TaskStore uses short-lived sqlite connections per call; close() is a no-op hook.
    try:
        state.task_store.close()
    except Exception:
        logger.debug("TaskStore close failed.", exc_info=True)


async def _run(state: AppState) -> None:
    try:
        await run_console_loop(state)
    finally:
        # Submitted mutations always finish, even when the console goes away.
        await state.app_scope.join()


def main() -> None:
    settings = get_settings()

    log_file = setup_logging(
        log_dir=settings.data_dir,
        console_level=parse_level(settings.log_level),
    )
    logger.info("Starting %s (log file: %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings)
    try:
        asyncio.run(_run(state))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
