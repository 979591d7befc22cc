# src/tasklist/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..core.state import AppState
from ..tasks.task_models import SortOrder, Task
from ..ui.tasks_controller import TasksController

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """Bad command arguments; the message is shown to the user as-is."""


@dataclass
class ConsoleSession:
    """What the console presentation layer keeps between commands."""

    state: AppState
    controller: TasksController
    undo_task: Task | None = None
    confirm_pending: bool = False

    def task_at(self, raw: str) -> Task:
        """Resolve a 1-based list position as shown by /list."""
        tasks = self.controller.tasks.value
        try:
            idx = int(raw)
        except ValueError:
            raise CommandError(f"Not a task number: {raw}") from None
        if not 1 <= idx <= len(tasks):
            raise CommandError(f"No task #{idx} (list has {len(tasks)}).")
        return tasks[idx - 1]


CommandHandler = Callable[[ConsoleSession, list[str]], str | None]


@dataclass(frozen=True)
class Command:
    name: str
    handler: CommandHandler
    help_text: str
    aliases: tuple[str, ...] = ()
    # Handler gets the rest of the line verbatim as a single argument.
    raw_args: bool = False


class CommandRegistry:
    """
    Slash commands for the console: "/name arg arg".

    Names and aliases are case-insensitive. A handler returns the reply text
    (None for "nothing to say") or raises CommandError with the reply.
    """

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}
        self._lookup: dict[str, Command] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
        *,
        raw_args: bool = False,
    ) -> None:
        cmd = Command(
            name.lower(),
            handler,
            help_text,
            tuple(a.lower() for a in aliases or ()),
            raw_args=raw_args,
        )
        self._commands[cmd.name] = cmd
        for key in (cmd.name, *cmd.aliases):
            self._lookup[key] = cmd

    def handle(self, session: ConsoleSession, line: str) -> str | None:
        """Run one console line. None means the line is not a command at all."""
        if not line.startswith("/"):
            return None

        body = line[1:].lstrip()
        name, *args = body.split() or [""]
        if not name:
            return "Empty command. Use /help to list available commands."

        cmd = self._lookup.get(name.lower())
        if cmd is None:
            return f"Unknown command: /{name.lower()}. Use /help to list available commands."

        if cmd.raw_args:
            rest = body[len(name):]
            rest = rest[1:] if rest[:1].isspace() else rest
            args = [rest] if rest else []

        logger.debug("Console command /%s args=%r", cmd.name, args)
        try:
            return cmd.handler(session, args) or ""
        except CommandError as exc:
            return str(exc)

    def build_help(self) -> str:
        width = max((len(c.name) for c in self._commands.values()), default=0)
        lines = ["Commands:"]
        for cmd in self._commands.values():
            alias = f"  (also: {', '.join('/' + a for a in cmd.aliases)})" if cmd.aliases else ""
            lines.append(f"  /{cmd.name:<{width}}  {cmd.help_text}{alias}")
        return "\n".join(lines)


registry = CommandRegistry()


def render_tasks(tasks: tuple[Task, ...] | list[Task]) -> str:
    if not tasks:
        return "(no tasks)"
    lines = []
    for i, t in enumerate(tasks, start=1):
        check = "x" if t.is_completed else " "
        star = "!" if t.is_important else " "
        lines.append(f"{i:>3}. [{check}] {star} {t.name}  ({t.created_date_formatted})")
    return "\n".join(lines)


def _parse_on_off(args: list[str], usage: str) -> bool:
    if not args:
        raise CommandError(usage)
    arg = args[0].lower()
    if arg in ("on", "1", "true", "yes"):
        return True
    if arg in ("off", "0", "false", "no"):
        return False
    raise CommandError(usage)


def cmd_help(session: ConsoleSession, args: list[str]) -> str:
    return registry.build_help()


def cmd_list(session: ConsoleSession, args: list[str]) -> str:
    return render_tasks(session.controller.tasks.value)


def cmd_status(session: ConsoleSession, args: list[str]) -> str:
    ctrl = session.controller
    prefs = ctrl.preferences.value
    return (
        "Status:\n"
        f"  Search: {ctrl.search_query.value!r}\n"
        f"  Sort: {prefs.sort_order.value}\n"
        f"  Hide completed: {'ON' if prefs.hide_completed else 'OFF'}\n"
        f"  Shown: {len(ctrl.tasks.value)}"
    )


def cmd_search(session: ConsoleSession, args: list[str]) -> str | None:
    session.controller.on_search_query_changed(args[0] if args else "")
    return None


def cmd_sort(session: ConsoleSession, args: list[str]) -> str | None:
    usage = "Usage: /sort name | /sort date"
    if not args:
        raise CommandError(usage)
    arg = args[0].lower()
    if arg == "name":
        session.controller.on_sort_order_selected(SortOrder.BY_NAME)
    elif arg == "date":
        session.controller.on_sort_order_selected(SortOrder.BY_DATE)
    else:
        raise CommandError(usage)
    return None


def cmd_hide(session: ConsoleSession, args: list[str]) -> str | None:
    session.controller.on_hide_completed_click(_parse_on_off(args, "Usage: /hide on | /hide off"))
    return None


def cmd_add(session: ConsoleSession, args: list[str]) -> str | None:
    """
    /add Buy milk     -> new task
    /add -i Pay rent  -> new important task
    """
    important = bool(args) and args[0] == "-i"
    if important:
        args = args[1:]
    session.controller.save_edit(" ".join(args), important, None)
    return None


def cmd_edit(session: ConsoleSession, args: list[str]) -> str | None:
    if not args:
        raise CommandError("Usage: /edit <n> <new name>")
    task = session.task_at(args[0])
    session.controller.save_edit(" ".join(args[1:]), task.is_important, task)
    return None


def cmd_star(session: ConsoleSession, args: list[str]) -> str | None:
    if not args:
        raise CommandError("Usage: /star <n>")
    task = session.task_at(args[0])
    session.controller.save_edit(task.name, not task.is_important, task)
    return None


def _set_completed(session: ConsoleSession, args: list[str], completed: bool, usage: str) -> None:
    if not args:
        raise CommandError(usage)
    session.controller.on_task_checked_changed(session.task_at(args[0]), completed)


def cmd_done(session: ConsoleSession, args: list[str]) -> str | None:
    _set_completed(session, args, True, "Usage: /done <n>")
    return None


def cmd_undone(session: ConsoleSession, args: list[str]) -> str | None:
    _set_completed(session, args, False, "Usage: /undone <n>")
    return None


def cmd_del(session: ConsoleSession, args: list[str]) -> str | None:
    if not args:
        raise CommandError("Usage: /del <n>")
    session.controller.on_task_swiped(session.task_at(args[0]))
    return None


def cmd_undo(session: ConsoleSession, args: list[str]) -> str:
    task = session.undo_task
    if task is None:
        return "Nothing to undo."
    session.undo_task = None
    session.controller.on_undo_delete_click(task)
    return f"Restoring '{task.name}'."


def cmd_open(session: ConsoleSession, args: list[str]) -> str | None:
    if not args:
        raise CommandError("Usage: /open <n>")
    session.controller.on_task_selected(session.task_at(args[0]))
    return None


def cmd_new(session: ConsoleSession, args: list[str]) -> str | None:
    session.controller.on_add_new_task_click()
    return None


def cmd_name(session: ConsoleSession, args: list[str]) -> str:
    session.controller.task_name = " ".join(args)
    return f"Name: {session.controller.task_name!r}"


def cmd_important(session: ConsoleSession, args: list[str]) -> str:
    value = _parse_on_off(args, "Usage: /important on | /important off")
    session.controller.task_importance = value
    return f"Important: {'ON' if value else 'OFF'}"


def cmd_save(session: ConsoleSession, args: list[str]) -> str | None:
    session.controller.on_save_click()
    return None


def cmd_clear(session: ConsoleSession, args: list[str]) -> str | None:
    session.controller.on_delete_all_completed_click()
    return None


def cmd_confirm(session: ConsoleSession, args: list[str]) -> str:
    if not session.confirm_pending:
        return "Nothing to confirm. Use /clear first."
    session.confirm_pending = False
    session.controller.on_confirm_delete_all_completed()
    return "Deleting completed tasks..."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="Show the current task list.", aliases=["ls"])
registry.register("status", cmd_status, help_text="Show search text, sort order and filter.")
registry.register(
    "search", cmd_search, help_text="Filter by name: /search <text> (empty clears).", raw_args=True
)
registry.register("sort", cmd_sort, help_text="Sort order: /sort name | /sort date.")
registry.register("hide", cmd_hide, help_text="Hide completed tasks: /hide on | /hide off.")
registry.register("add", cmd_add, help_text="Add a task: /add [-i] <name>.")
registry.register("edit", cmd_edit, help_text="Rename a task: /edit <n> <name>.")
registry.register("star", cmd_star, help_text="Toggle importance: /star <n>.")
registry.register("done", cmd_done, help_text="Mark completed: /done <n>.")
registry.register("undone", cmd_undone, help_text="Mark not completed: /undone <n>.")
registry.register("del", cmd_del, help_text="Delete a task: /del <n>.", aliases=["rm"])
registry.register("undo", cmd_undo, help_text="Restore the last deleted task.")
registry.register("open", cmd_open, help_text="Open a task in the edit form: /open <n>.")
registry.register("new", cmd_new, help_text="Start a blank add form.")
registry.register("name", cmd_name, help_text="Form: set the task name: /name <text>.")
registry.register("important", cmd_important, help_text="Form: /important on | /important off.")
registry.register("save", cmd_save, help_text="Form: save the add/edit form.")
registry.register("clear", cmd_clear, help_text="Delete all completed tasks (asks first).")
registry.register("confirm", cmd_confirm, help_text="Confirm deleting all completed tasks.")
