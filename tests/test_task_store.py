# tests/test_task_store.py

from __future__ import annotations

import asyncio
import contextlib
import sqlite3
from dataclasses import replace
from pathlib import Path

import pytest

from tasklist.core.errors import NotFoundError, StorageError
from tasklist.tasks.task_models import SortOrder, Task
from tasklist.tasks.task_store import DEMO_TASKS, TaskStore

from .fakes import wait_until


def _fill(store: TaskStore) -> dict[str, Task]:
    specs = [
        Task("walk dog", created_at=1000),
        Task("Buy bread", created_at=2000, is_completed=True),
        Task("answer mail", created_at=3000, is_important=True),
        Task("Call Bob", created_at=4000),
        Task("buy stamps", created_at=5000, is_important=True, is_completed=True),
    ]
    return {t.name: store.insert(t) for t in specs}


def _names(tasks: list[Task]) -> list[str]:
    return [t.name for t in tasks]


def test_insert_assigns_ids_and_keeps_fields(store: TaskStore) -> None:
    a = store.insert(Task("first", created_at=111))
    b = store.insert(Task("second", is_important=True))

    assert a.id is not None and b.id is not None
    assert b.id > a.id
    assert store.get_task(a.id) == a
    assert store.get_task(b.id) == b
    assert store.count_tasks() == 2


def test_ids_are_never_reused(store: TaskStore) -> None:
    a = store.insert(Task("a"))
    b = store.insert(Task("b"))
    store.delete(b)
    c = store.insert(Task("c"))

    assert c.id is not None and b.id is not None and a.id is not None
    assert c.id > b.id


def test_search_is_case_sensitive_substring(store: TaskStore) -> None:
    _fill(store)

    assert _names(store.get_tasks("", SortOrder.BY_DATE, False)) == [
        "answer mail",
        "buy stamps",
        "walk dog",
        "Buy bread",
        "Call Bob",
    ]
    assert set(_names(store.get_tasks("uy", SortOrder.BY_NAME, False))) == {"Buy bread", "buy stamps"}
    assert _names(store.get_tasks("Buy", SortOrder.BY_NAME, False)) == ["Buy bread"]
    assert store.get_tasks("BUY", SortOrder.BY_NAME, False) == []


def test_like_wildcards_are_matched_literally(store: TaskStore) -> None:
    store.insert(Task("100% done"))
    store.insert(Task("plain"))

    assert _names(store.get_tasks("%", SortOrder.BY_NAME, False)) == ["100% done"]
    assert store.get_tasks("_", SortOrder.BY_NAME, False) == []


def test_hide_completed_only_drops_completed(store: TaskStore) -> None:
    _fill(store)

    hidden = store.get_tasks("", SortOrder.BY_NAME, True)
    shown = store.get_tasks("", SortOrder.BY_NAME, False)

    assert all(not t.is_completed for t in hidden)
    assert len(hidden) == 3
    assert len(shown) == 5


def test_ordering_important_first_then_sort_key(store: TaskStore) -> None:
    _fill(store)

    by_name = store.get_tasks("", SortOrder.BY_NAME, False)
    by_date = store.get_tasks("", SortOrder.BY_DATE, False)

    # BINARY collation: upper case sorts before lower case.
    assert _names(by_name) == ["answer mail", "buy stamps", "Buy bread", "Call Bob", "walk dog"]
    assert _names(by_date) == ["answer mail", "buy stamps", "walk dog", "Buy bread", "Call Bob"]

    for result, key in ((by_name, lambda t: t.name), (by_date, lambda t: t.created_at)):
        for a, b in zip(result, result[1:]):
            if a.is_important != b.is_important:
                assert a.is_important
            else:
                assert key(a) <= key(b)


def test_new_task_is_last_among_unimportant_by_date(store: TaskStore) -> None:
    _fill(store)
    milk = store.insert(Task("Buy milk"))

    tasks = store.get_tasks("", SortOrder.BY_DATE, False)
    unimportant = [t for t in tasks if not t.is_important]
    assert unimportant[-1] == milk


def test_update_replaces_whole_record(store: TaskStore) -> None:
    t = store.insert(Task("draft", created_at=42))
    edited = replace(t, name="final", is_important=True, is_completed=True)

    store.update(edited)

    assert store.get_task(t.id) == edited


def test_update_missing_raises_not_found(store: TaskStore) -> None:
    with pytest.raises(NotFoundError):
        store.update(Task("ghost", id=999))
    with pytest.raises(NotFoundError):
        store.update(Task("no id"))
    assert store.count_tasks() == 0


def test_delete_is_idempotent(store: TaskStore) -> None:
    tasks = _fill(store)
    victim = tasks["Call Bob"]

    assert store.delete(victim) is True
    after_first = store.get_tasks("", SortOrder.BY_DATE, False)
    changes_after_first = store.changes.value

    assert store.delete(victim) is False
    assert store.get_tasks("", SortOrder.BY_DATE, False) == after_first
    assert store.changes.value == changes_after_first


def test_delete_then_insert_restores_identical_record(store: TaskStore) -> None:
    tasks = _fill(store)
    original = tasks["answer mail"]

    store.delete(original)
    assert store.get_task(original.id) is None

    restored = store.insert(original)

    assert restored == original
    assert store.get_task(original.id) == original


def test_insert_with_existing_id_upserts(store: TaskStore) -> None:
    t = store.insert(Task("old"))
    store.insert(replace(t, name="new"))

    assert store.count_tasks() == 1
    assert store.get_task(t.id).name == "new"


def test_delete_all_completed_removes_exactly_completed(store: TaskStore) -> None:
    for i in range(3):
        store.insert(Task(f"done {i}", is_completed=True))
    for i in range(2):
        store.insert(Task(f"open {i}"))

    removed = store.delete_all_completed()

    assert removed == 3
    remaining = store.get_tasks("", SortOrder.BY_DATE, False)
    assert _names(remaining) == ["open 0", "open 1"]
    assert store.delete_all_completed() == 0


def test_seed_only_when_database_is_created(tmp_path: Path) -> None:
    db = tmp_path / "seeded.sqlite3"
    store = TaskStore(db, seed=True)
    assert store.count_tasks() == len(DEMO_TASKS)

    first = store.get_tasks("", SortOrder.BY_DATE, False)[0]
    assert first.name == "Prepare food" and first.is_important
    store.delete(first)

    reopened = TaskStore(db, seed=True)
    assert reopened.count_tasks() == len(DEMO_TASKS) - 1


def test_incompatible_schema_is_replaced(tmp_path: Path) -> None:
    db = tmp_path / "legacy.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute("CREATE TABLE tasks (id INTEGER PRIMARY KEY, title TEXT)")
    conn.execute("INSERT INTO tasks(title) VALUES ('legacy')")
    conn.commit()
    conn.close()

    store = TaskStore(db)

    assert store.count_tasks() == 0
    t = store.insert(Task("fresh"))
    assert store.get_task(t.id) == t


def test_unopenable_database_raises_storage_error(tmp_path: Path) -> None:
    # A directory cannot be opened as a database file.
    db_dir = tmp_path / "not_a_file.sqlite3"
    db_dir.mkdir()

    with pytest.raises(StorageError):
        TaskStore(db_dir)


@pytest.mark.asyncio
async def test_live_query_redelivers_after_each_mutation(store: TaskStore) -> None:
    results = store.query("", SortOrder.BY_DATE, True)

    first = await asyncio.wait_for(results.__anext__(), 2.0)
    assert first == []

    milk = await asyncio.to_thread(store.insert, Task("Buy milk"))
    second = await asyncio.wait_for(results.__anext__(), 2.0)
    assert second == [milk]

    # Completing it with hide_completed active makes it disappear from the live result.
    await asyncio.to_thread(store.update, replace(milk, is_completed=True))
    third = await asyncio.wait_for(results.__anext__(), 2.0)
    assert third == []

    await results.aclose()
    assert store.changes.subscriber_count == 0


@pytest.mark.asyncio
async def test_concurrent_writers_are_serialized_and_delete_all_is_atomic(store: TaskStore) -> None:
    for i in range(3):
        store.insert(Task(f"done {i}", is_completed=True, created_at=i))
    open_tasks = [store.insert(Task(f"open {i}", created_at=10 + i)) for i in range(2)]

    snapshots: list[list[Task]] = []

    async def follow() -> None:
        async for tasks in store.query("", SortOrder.BY_DATE, False):
            snapshots.append(tasks)

    follower = asyncio.create_task(follow())
    await wait_until(lambda: len(snapshots) == 1)

    def writer(n: int) -> None:
        for k in range(10):
            store.insert(Task(f"w{n}-{k}"))
            store.update(replace(open_tasks[n % 2], name=f"open {n}-{k}"))

    *_, removed = await asyncio.gather(
        *(asyncio.to_thread(writer, n) for n in range(3)),
        asyncio.to_thread(store.delete_all_completed),
    )

    try:
        await wait_until(lambda: len(snapshots[-1]) == 2 + 30, timeout=5.0)
    finally:
        follower.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await follower

    assert removed == 3
    for tasks in snapshots:
        assert sum(t.is_completed for t in tasks) in (0, 3)

    final = store.get_tasks()
    assert len(final) == 32
    assert len({t.id for t in final}) == 32
    assert not any(t.is_completed for t in final)
