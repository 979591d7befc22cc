# src/tasklist/connectors/console_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import assert_never

from ..cli.commands import ConsoleSession, render_tasks
from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.task_models import Task
from ..ui.tasks_controller import TasksController
from ..ui.tasks_events import (
    NavigateBackWithResult,
    NavigateToAddTaskScreen,
    NavigateToDeleteAllCompletedScreen,
    NavigateToEditTaskScreen,
    ShowErrorMessage,
    ShowInvalidInputMessage,
    ShowTaskSavedConfirmationMessage,
    ShowUndoDeleteTaskMessage,
    TasksEvent,
)

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def handle_event(session: ConsoleSession, event: TasksEvent) -> None:
    match event:
        case NavigateToAddTaskScreen():
            _print_ts("New task: set /name <text>, optionally /important on, then /save.")
        case NavigateToEditTaskScreen(task=task):
            _print_ts(f"Editing '{task.name}': /name <text>, /important on|off, /save.")
        case ShowUndoDeleteTaskMessage(task=task):
            session.undo_task = task
            _print_ts(f"Task deleted: '{task.name}'. Use /undo to restore it.")
        case ShowTaskSavedConfirmationMessage(msg=msg):
            _print_ts(msg)
        case NavigateToDeleteAllCompletedScreen():
            session.confirm_pending = True
            _print_ts("Delete all completed tasks? Use /confirm to proceed.")
        case ShowInvalidInputMessage(msg=msg):
            _print_ts(f"Invalid input: {msg}")
        case NavigateBackWithResult(result=result):
            session.controller.on_add_edit_result(result)
        case ShowErrorMessage(msg=msg):
            _print_ts(f"Error: {msg}")
        case _:
            assert_never(event)


async def _consume_events(session: ConsoleSession) -> None:
    async for event in session.controller.events:
        try:
            handle_event(session, event)
        except Exception:
            logger.exception("Console event handler crashed event=%r", event)


async def run_console_loop(state: AppState) -> None:
    controller = TasksController(
        state.task_store,
        state.preferences,
        app_scope=state.app_scope,
        saved_state=state.saved_state,
    )
    session = ConsoleSession(state=state, controller=controller)
    logger.info("Console connector started.")

    def _show(tasks: tuple[Task, ...]) -> None:
        print(render_tasks(tasks), flush=True)

    list_sub = controller.tasks.subscribe(_show, replay=False)
    events_task = asyncio.create_task(_consume_events(session), name="console-events")
    await controller.start()

    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.")

    try:
        while True:
            try:
                line = (await asyncio.to_thread(input, "> ")).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not line:
                continue

            if line.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            if not line.startswith("/"):
                line = f"/add {line}"

            try:
                reply = command_registry.handle(session, line)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply:
                _print_ts(reply)

            # Let launched work and its events surface before the next prompt.
            await asyncio.sleep(0.05)
    finally:
        list_sub.close()
        await controller.close()
        with contextlib.suppress(asyncio.CancelledError):
            await events_task
        logger.info("Console connector finished.")
