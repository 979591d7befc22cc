# src/tasklist/tasks/task_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
import threading
from collections.abc import AsyncIterator, Iterator
from dataclasses import replace
from pathlib import Path

from ..core.errors import NotFoundError, StorageError
from ..core.live import LiveValue
from .task_models import SortOrder, Task, now_ms

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

_REQUIRED_COLUMNS = frozenset({"id", "name", "is_important", "is_completed", "created_at"})

_SELECT = "SELECT id, name, is_important, is_completed, created_at FROM tasks"

# (is_completed != :hide OR is_completed = 0): hiding only ever removes completed rows.
_WHERE = "WHERE (is_completed != ? OR is_completed = 0) AND instr(name, ?) > 0"

_SQL_BY_NAME = f"{_SELECT} {_WHERE} ORDER BY is_important DESC, name ASC, id ASC"
_SQL_BY_DATE = f"{_SELECT} {_WHERE} ORDER BY is_important DESC, created_at ASC, id ASC"

DEMO_TASKS: tuple[Task, ...] = (
    Task("Wash the dishes"),
    Task("Do the laundry"),
    Task("Buy groceries"),
    Task("Prepare food", is_important=True),
    Task("Call mom"),
    Task("Visit grandma", is_completed=True),
    Task("Repair my Lamborghini", is_completed=True),
    Task("Call Elon Musk"),
)


class TaskStore:
    """
    SQLite task store.

    Schema handling:
    - create table if missing
    - PRAGMA user_version carries SCHEMA_VERSION
    - an incompatible table (other version / missing columns) is dropped and recreated

    Thread-safety:
    - each method opens its own SQLite connection
    - writes are serialized by one lock; readers see committed snapshots only

    Every committed mutation bumps `changes`, which drives the live queries.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, seed: bool = False) -> None:
        self._db_path = Path(db_path)
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"cannot create data dir for {self._db_path}") from exc

        self._write_lock = threading.Lock()
        self.changes: LiveValue[int] = LiveValue(0, name="task_store.changes")

        created = self._ensure_schema()
        if created and seed:
            self._seed(DEMO_TASKS)

        try:
            total = self.count_tasks()
        except StorageError:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as exc:
            raise StorageError(f"cannot open task database {self._db_path}: {exc}") from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            raise StorageError(f"task database error: {exc}") from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> bool:
        """Create (or replace) the tasks table. Returns True when the table was created."""
        with self._connect() as conn:
            cur = conn.cursor()
            (version,) = cur.execute("PRAGMA user_version").fetchone()
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            if cols and (version != SCHEMA_VERSION or not _REQUIRED_COLUMNS <= cols):
                logger.warning(
                    "TaskStore: incompatible schema (version=%s columns=%s); replacing table",
                    version,
                    sorted(cols),
                )
                cur.execute("DROP TABLE tasks")
                cols = set()

            created = not cols
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    is_important INTEGER NOT NULL DEFAULT 0,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    created_at INTEGER NOT NULL
                )
                """
            )
            cur.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            conn.commit()
        return created

    def _seed(self, tasks: tuple[Task, ...]) -> None:
        base = now_ms()
        rows = [
            (t.name, int(t.is_important), int(t.is_completed), base + i)
            for i, t in enumerate(tasks)
        ]
        with self._write_lock, self._connect() as conn:
            conn.executemany(
                "INSERT INTO tasks(name, is_important, is_completed, created_at) VALUES (?, ?, ?, ?)",
                rows,
            )
            conn.commit()
        logger.info("TaskStore seeded %d demo tasks", len(rows))
        self._notify()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            name=str(row["name"] or ""),
            is_important=bool(row["is_important"]),
            is_completed=bool(row["is_completed"]),
            created_at=int(row["created_at"] or 0),
        )

    def _notify(self) -> None:
        self.changes.update(lambda n: n + 1)

    # ---- reads ----

    def count_tasks(self) -> int:
        with self._connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def get_task(self, task_id: int) -> Task | None:
        with self._connect() as conn:
            row = conn.execute(f"{_SELECT} WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None

    def get_tasks(
        self,
        search: str = "",
        sort_order: SortOrder = SortOrder.BY_DATE,
        hide_completed: bool = False,
    ) -> list[Task]:
        """
        One-shot evaluation of the task list.

        - name contains `search` (case-sensitive; "" matches everything)
        - completed tasks are dropped only when hide_completed is set
        - important first, then name (BY_NAME) or creation time (BY_DATE)
        """
        if sort_order == SortOrder.BY_NAME:
            sql = _SQL_BY_NAME
        else:
            sql = _SQL_BY_DATE

        with self._connect() as conn:
            rows = conn.execute(sql, (int(bool(hide_completed)), search or "")).fetchall()
            return [self._row_to_task(r) for r in rows]

    async def query(
        self,
        search: str = "",
        sort_order: SortOrder = SortOrder.BY_DATE,
        hide_completed: bool = False,
    ) -> AsyncIterator[list[Task]]:
        """
        Live query: yields the current result, then a fresh result after every
        committed mutation. Runs until the consumer stops iterating.
        """
        loop = asyncio.get_running_loop()
        changed = asyncio.Event()

        def _on_change(_version: int) -> None:
            loop.call_soon_threadsafe(changed.set)

        sub = self.changes.subscribe(_on_change, replay=False)
        try:
            while True:
                changed.clear()
                tasks = await asyncio.to_thread(self.get_tasks, search, sort_order, hide_completed)
                yield tasks
                await changed.wait()
        finally:
            sub.close()

    # ---- mutations ----

    def insert(self, task: Task) -> Task:
        """
        Store a task and return it with its id.

        A task without id gets a fresh one; a task with an id replaces whatever
        is stored under it (used to restore a deleted task unchanged).
        """
        with self._write_lock, self._connect() as conn:
            if task.id is None:
                cur = conn.execute(
                    "INSERT INTO tasks(name, is_important, is_completed, created_at) VALUES (?, ?, ?, ?)",
                    (task.name, int(task.is_important), int(task.is_completed), int(task.created_at)),
                )
                rowid = cur.lastrowid
                if rowid is None:
                    raise StorageError("SQLite did not return lastrowid for tasks insert")
                stored = replace(task, id=int(rowid))
            else:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO tasks(id, name, is_important, is_completed, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        int(task.id),
                        task.name,
                        int(task.is_important),
                        int(task.is_completed),
                        int(task.created_at),
                    ),
                )
                stored = task
            conn.commit()

        logger.debug("Task stored id=%s name=%r", stored.id, stored.name)
        self._notify()
        return stored

    def update(self, task: Task) -> None:
        """Replace the stored task with the same id. Raises NotFoundError if there is none."""
        if task.id is None:
            raise NotFoundError(None)

        with self._write_lock, self._connect() as conn:
            cur = conn.execute(
                """
                UPDATE tasks
                SET name = ?, is_important = ?, is_completed = ?, created_at = ?
                WHERE id = ?
                """,
                (
                    task.name,
                    int(task.is_important),
                    int(task.is_completed),
                    int(task.created_at),
                    int(task.id),
                ),
            )
            conn.commit()
            if cur.rowcount == 0:
                raise NotFoundError(task.id)

        logger.debug("Task updated id=%s", task.id)
        self._notify()

    def delete(self, task: Task) -> bool:
        """Remove by id. Deleting a missing task is a no-op; returns whether a row went away."""
        if task.id is None:
            return False

        with self._write_lock, self._connect() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task.id),))
            conn.commit()
            removed = cur.rowcount > 0

        if removed:
            logger.debug("Task deleted id=%s", task.id)
            self._notify()
        return removed

    def delete_all_completed(self) -> int:
        with self._write_lock, self._connect() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE is_completed = 1")
            conn.commit()
            removed = int(cur.rowcount)

        logger.info("Deleted %d completed tasks", removed)
        if removed:
            self._notify()
        return removed
