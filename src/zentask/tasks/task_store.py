# src/zentask/tasks/task_store.py

from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Mapping, Sequence
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from ..errors import StoreUnavailable, WriteRejected
from .task_models import Category, Priority, Task, normalize_changes

logger = logging.getLogger(__name__)

# Model field -> column. Only these may be touched by update_fields.
_COLUMNS = {
    "title": "title",
    "description": "description",
    "due_date": "due_date",
    "completed": "completed",
    "priority": "priority",
    "category": "category",
}


def ms_to_timestamp(ms: int) -> str:
    """Epoch ms -> ISO-8601 UTC text with millisecond precision (sorts lexicographically)."""
    return datetime.fromtimestamp(ms / 1000, tz=UTC).isoformat(timespec="milliseconds")


def timestamp_to_ms(raw: str) -> int:
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(round(dt.timestamp() * 1000))


def _to_column(name: str, value: Any) -> Any:
    if name == "due_date":
        return value.isoformat()
    if name == "completed":
        return 1 if value else 0
    if name in ("priority", "category"):
        return value.value
    return value


class SqliteTaskStore:
    """
    Relational task table (SQLite).

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Each call opens its own short-lived connection and runs in a worker thread
    (asyncio.to_thread), so the event loop is never blocked. The busy timeout is
    the store's only timeout; hitting it surfaces as a failure.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, timeout_seconds: float = 30.0) -> None:
        self._db_path = Path(db_path)
        self._timeout = float(timeout_seconds)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SqliteTaskStore ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=self._timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT,
                    due_date TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    priority TEXT NOT NULL DEFAULT 'Medium',
                    category TEXT NOT NULL DEFAULT 'Personal',
                    created_at TEXT NOT NULL
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("SqliteTaskStore migration: added column %s", name)

            add_col("description", "TEXT")
            add_col("completed", "INTEGER NOT NULL DEFAULT 0")
            add_col("priority", "TEXT NOT NULL DEFAULT 'Medium'")
            add_col("category", "TEXT NOT NULL DEFAULT 'Personal'")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            title=str(row["title"]),
            description=row["description"] or None,
            due_date=date.fromisoformat(str(row["due_date"])),
            completed=bool(row["completed"]),
            priority=Priority.parse(row["priority"]),
            category=Category.parse(row["category"]),
            created_at=timestamp_to_ms(str(row["created_at"])),
        )

    @staticmethod
    def _task_params(task: Task) -> tuple[Any, ...]:
        return (
            task.id,
            task.title,
            task.description,
            task.due_date.isoformat(),
            1 if task.completed else 0,
            task.priority.value,
            task.category.value,
            ms_to_timestamp(task.created_at),
        )

    def _fetch_all(self) -> list[Task]:
        conn = self._get_conn()
        try:
            cur = conn.execute("SELECT * FROM tasks ORDER BY created_at DESC")
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def _insert(self, tasks: Sequence[Task]) -> None:
        conn = self._get_conn()
        try:
            # One transaction: either every row lands or none does.
            with conn:
                conn.executemany(
                    """
                    INSERT INTO tasks(
                        id, title, description, due_date,
                        completed, priority, category, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [self._task_params(t) for t in tasks],
                )
        finally:
            conn.close()

    def _update(self, task_id: str, changes: dict[str, Any]) -> int:
        fields = [f"{_COLUMNS[name]} = ?" for name in changes]
        params = [_to_column(name, value) for name, value in changes.items()]
        params.append(task_id)
        sql = f"UPDATE tasks SET {', '.join(fields)} WHERE id = ?"

        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute(sql, params)
            return cur.rowcount
        finally:
            conn.close()

    def _delete(self, task_id: str) -> int:
        conn = self._get_conn()
        try:
            with conn:
                cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            return cur.rowcount
        finally:
            conn.close()

    # ---- TaskStore ----

    async def load_all(self) -> list[Task]:
        try:
            tasks = await asyncio.to_thread(self._fetch_all)
        except (sqlite3.Error, ValueError) as e:
            raise StoreUnavailable(f"cannot read tasks from {self._db_path}: {e}") from e
        logger.info("Loaded %d tasks from %s", len(tasks), self._db_path)
        return tasks

    async def create_one(self, task: Task) -> None:
        await self.create_many([task])

    async def create_many(self, tasks: Sequence[Task]) -> None:
        if not tasks:
            return
        try:
            await asyncio.to_thread(self._insert, list(tasks))
        except sqlite3.Error as e:
            raise WriteRejected(f"insert of {len(tasks)} task(s) rejected: {e}") from e
        logger.debug("Inserted %d task(s)", len(tasks))

    async def update_fields(self, task_id: str, fields: Mapping[str, Any]) -> None:
        changes = normalize_changes(dict(fields))
        if not changes:
            return
        try:
            n = await asyncio.to_thread(self._update, task_id, changes)
        except sqlite3.Error as e:
            raise WriteRejected(f"update of task {task_id} rejected: {e}") from e
        if n != 1:
            raise WriteRejected(f"task {task_id} does not exist")
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(changes))

    async def delete_one(self, task_id: str) -> None:
        try:
            n = await asyncio.to_thread(self._delete, task_id)
        except sqlite3.Error as e:
            raise WriteRejected(f"delete of task {task_id} rejected: {e}") from e
        if n != 1:
            raise WriteRejected(f"task {task_id} does not exist")
        logger.debug("Task deleted id=%s", task_id)
