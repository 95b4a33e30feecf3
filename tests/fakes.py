# tests/fakes.py

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any

from zentask.errors import StoreUnavailable, WriteRejected
from zentask.tasks.reconciler import TaskReconciler
from zentask.tasks.task_models import Category, Priority, Task, normalize_changes


def make_task(
    task_id: str,
    *,
    created_at: int,
    due: date = date(2026, 10, 19),
    completed: bool = False,
    priority: Priority = Priority.MEDIUM,
    category: Category = Category.PERSONAL,
    title: str | None = None,
) -> Task:
    return Task(
        id=task_id,
        title=title or f"task {task_id}",
        due_date=due,
        priority=priority,
        category=category,
        created_at=created_at,
        completed=completed,
    )


class AlertRecorder:
    """AlertSink that remembers every message."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def __call__(self, message: str) -> None:
        self.messages.append(message)


class Clock:
    """Deterministic epoch-ms clock: start, start+1, ..."""

    def __init__(self, start: int = 1_000) -> None:
        self.now = start

    def __call__(self) -> int:
        value = self.now
        self.now += 1
        return value


@dataclass(slots=True)
class PendingCall:
    op: str
    args: tuple[Any, ...]
    future: asyncio.Future[None]

    def succeed(self) -> None:
        self.future.set_result(None)

    def fail(self, message: str = "write rejected") -> None:
        self.future.set_exception(WriteRejected(message))


class GatedTaskStore:
    """
    TaskStore whose writes block until the test settles them.

    Each write appends a PendingCall; the test decides when (and in which
    order) calls succeed or fail. Writes start only once the event loop runs,
    so use wait_for_calls() before settling.
    """

    def __init__(self, tasks: Iterable[Task] = (), *, load_error: Exception | None = None) -> None:
        self.initial = list(tasks)
        self.load_error = load_error
        self.calls: list[PendingCall] = []

    async def load_all(self) -> list[Task]:
        if self.load_error is not None:
            raise self.load_error
        return list(self.initial)

    async def create_one(self, task: Task) -> None:
        await self._gate("create_one", task)

    async def create_many(self, tasks: Sequence[Task]) -> None:
        await self._gate("create_many", list(tasks))

    async def update_fields(self, task_id: str, fields: Mapping[str, Any]) -> None:
        await self._gate("update_fields", task_id, dict(fields))

    async def delete_one(self, task_id: str) -> None:
        await self._gate("delete_one", task_id)

    async def _gate(self, op: str, *args: Any) -> None:
        call = PendingCall(op=op, args=args, future=asyncio.get_running_loop().create_future())
        self.calls.append(call)
        await call.future

    async def wait_for_calls(self, n: int) -> None:
        for _ in range(100):
            if len(self.calls) >= n:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"expected {n} store calls, got {len(self.calls)}")


@dataclass
class FlakyTaskStore:
    """
    In-memory TaskStore that settles immediately.

    `should_fail(op)` decides per call whether the write is rejected.
    """

    tasks: dict[str, Task] = field(default_factory=dict)
    should_fail: Callable[[str], bool] = lambda op: False
    ops: list[str] = field(default_factory=list)

    async def load_all(self) -> list[Task]:
        return sorted(self.tasks.values(), key=lambda t: t.created_at, reverse=True)

    async def create_one(self, task: Task) -> None:
        await self.create_many([task])

    async def create_many(self, tasks: Sequence[Task]) -> None:
        self._check("create")
        if any(t.id in self.tasks for t in tasks):
            raise WriteRejected("duplicate id")
        for t in tasks:
            self.tasks[t.id] = t

    async def update_fields(self, task_id: str, fields: Mapping[str, Any]) -> None:
        self._check("update")
        if task_id not in self.tasks:
            raise WriteRejected("missing")
        self.tasks[task_id] = replace(self.tasks[task_id], **normalize_changes(dict(fields)))

    async def delete_one(self, task_id: str) -> None:
        self._check("delete")
        if self.tasks.pop(task_id, None) is None:
            raise WriteRejected("missing")

    def _check(self, op: str) -> None:
        self.ops.append(op)
        if self.should_fail(op):
            raise WriteRejected(f"{op} rejected")


class UnavailableStore(GatedTaskStore):
    def __init__(self) -> None:
        super().__init__(load_error=StoreUnavailable("backend offline"))


async def make_engine(store: Any, alerts: AlertRecorder, *, clock: Clock | None = None, **kwargs: Any) -> TaskReconciler:
    engine = TaskReconciler(store, alert=alerts, clock_ms=clock or Clock(), **kwargs)
    await engine.load()
    return engine


class FakeLLMClient:
    """
    Deterministic LLM client for unit tests.

    - Captures calls for assertions
    - Returns next_text, or raises `error` when set
    """

    def __init__(self, next_text: str = "ok", error: Exception | None = None) -> None:
        self.next_text = next_text
        self.error = error
        self.calls: list[tuple[str, dict[str, Any] | None]] = []

    def complete(self, prompt: str, *, json_schema: dict[str, Any] | None = None) -> str:
        self.calls.append((prompt, json_schema))
        if self.error is not None:
            raise self.error
        return self.next_text
