# tests/test_task_store.py

from __future__ import annotations

import sqlite3
from datetime import date
from pathlib import Path

import pytest

from zentask.errors import StoreUnavailable, WriteRejected
from zentask.tasks.task_models import Priority
from zentask.tasks.task_store import SqliteTaskStore, ms_to_timestamp, timestamp_to_ms

from .fakes import make_task


def test_timestamp_conversion_keeps_milliseconds() -> None:
    assert ms_to_timestamp(0) == "1970-01-01T00:00:00.000+00:00"
    ms = 1_760_870_400_123
    assert timestamp_to_ms(ms_to_timestamp(ms)) == ms
    # naive text is read as UTC
    assert timestamp_to_ms("1970-01-01T00:00:01.500") == 1500


@pytest.mark.asyncio
async def test_load_orders_by_created_at_descending(tmp_path: Path) -> None:
    store = SqliteTaskStore(tmp_path / "tasks.sqlite3", timeout_seconds=1.0)
    await store.create_one(make_task("mid", created_at=2_000))
    await store.create_one(make_task("old", created_at=1_000))
    await store.create_one(make_task("new", created_at=3_000))

    loaded = await store.load_all()

    assert [t.id for t in loaded] == ["new", "mid", "old"]
    assert loaded[0] == make_task("new", created_at=3_000)


@pytest.mark.asyncio
async def test_created_at_is_persisted_as_text(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    store = SqliteTaskStore(db, timeout_seconds=1.0)
    await store.create_one(make_task("a", created_at=1_000))

    conn = sqlite3.connect(str(db))
    try:
        (created_at, due_date) = conn.execute("SELECT created_at, due_date FROM tasks WHERE id = 'a'").fetchone()
    finally:
        conn.close()

    assert created_at == "1970-01-01T00:00:01.000+00:00"
    assert due_date == "2026-10-19"


@pytest.mark.asyncio
async def test_update_touches_only_supplied_columns(tmp_path: Path) -> None:
    store = SqliteTaskStore(tmp_path / "tasks.sqlite3", timeout_seconds=1.0)
    await store.create_one(make_task("a", created_at=1, title="keep me"))

    await store.update_fields("a", {"completed": True, "priority": "High", "due_date": "2026-12-01"})

    (task,) = await store.load_all()
    assert task.completed is True
    assert task.priority is Priority.HIGH
    assert task.due_date == date(2026, 12, 1)
    assert task.title == "keep me"


@pytest.mark.asyncio
async def test_update_and_delete_of_missing_id_are_rejected(tmp_path: Path) -> None:
    store = SqliteTaskStore(tmp_path / "tasks.sqlite3", timeout_seconds=1.0)

    with pytest.raises(WriteRejected):
        await store.update_fields("ghost", {"completed": True})
    with pytest.raises(WriteRejected):
        await store.delete_one("ghost")


@pytest.mark.asyncio
async def test_delete_removes_row(tmp_path: Path) -> None:
    store = SqliteTaskStore(tmp_path / "tasks.sqlite3", timeout_seconds=1.0)
    await store.create_many([make_task("a", created_at=1), make_task("b", created_at=2)])

    await store.delete_one("a")

    assert [t.id for t in await store.load_all()] == ["b"]


@pytest.mark.asyncio
async def test_duplicate_id_is_rejected(tmp_path: Path) -> None:
    store = SqliteTaskStore(tmp_path / "tasks.sqlite3", timeout_seconds=1.0)
    await store.create_one(make_task("a", created_at=1))

    with pytest.raises(WriteRejected):
        await store.create_one(make_task("a", created_at=2))


@pytest.mark.asyncio
async def test_create_many_is_all_or_nothing(tmp_path: Path) -> None:
    store = SqliteTaskStore(tmp_path / "tasks.sqlite3", timeout_seconds=1.0)
    await store.create_one(make_task("taken", created_at=1))

    batch = [make_task("n1", created_at=5), make_task("taken", created_at=5), make_task("n2", created_at=5)]
    with pytest.raises(WriteRejected):
        await store.create_many(batch)

    assert [t.id for t in await store.load_all()] == ["taken"]


@pytest.mark.asyncio
async def test_unreadable_table_raises_store_unavailable(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    store = SqliteTaskStore(db, timeout_seconds=1.0)

    conn = sqlite3.connect(str(db))
    try:
        conn.execute("DROP TABLE tasks")
        conn.commit()
    finally:
        conn.close()

    with pytest.raises(StoreUnavailable):
        await store.load_all()


def test_schema_migration_adds_missing_columns(tmp_path: Path) -> None:
    db = tmp_path / "tasks.sqlite3"
    conn = sqlite3.connect(str(db))
    try:
        conn.execute(
            "CREATE TABLE tasks (id TEXT PRIMARY KEY, title TEXT NOT NULL, "
            "due_date TEXT NOT NULL, created_at TEXT NOT NULL)"
        )
        conn.commit()
    finally:
        conn.close()

    SqliteTaskStore(db, timeout_seconds=1.0)

    conn = sqlite3.connect(str(db))
    try:
        cols = {row[1] for row in conn.execute("PRAGMA table_info(tasks)")}
    finally:
        conn.close()
    assert {"description", "completed", "priority", "category"} <= cols
