# src/zentask/tasks/reconciler.py

"""
Optimistic task reconciliation.

TaskReconciler owns the canonical in-memory task list. Every mutation:
- applies its change synchronously (readers see it immediately),
- dispatches the matching TaskStore call as an asyncio task,
- on failure applies a compensating change built from values captured
  *before* the optimistic change, then alerts the user.

Compensations are keyed by task id and captured values, never by positions
or by inverting whatever the current state happens to be. Between dispatch and
settlement other mutations may run; a compensation whose task is gone leaves
the collection untouched and raises nothing (the alert is still shown).

Precondition: load() must finish before any mutation (TasksLoading otherwise).
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Callable, Coroutine, Iterable
from dataclasses import replace
from typing import Any

from ..core.ports import AlertSink, TaskStore
from ..errors import StoreUnavailable, TasksLoading
from .task_models import Task, TaskDraft, normalize_changes

logger = logging.getLogger(__name__)

MSG_ADD_FAILED = "Failed to save task to cloud."
MSG_ADD_MANY_FAILED = "Failed to save tasks to cloud."
MSG_UPDATE_FAILED = "Failed to update task in cloud."
MSG_DELETE_FAILED = "Failed to delete task from cloud."


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


class TaskReconciler:
    def __init__(
        self,
        store: TaskStore,
        *,
        alert: AlertSink,
        clock_ms: Callable[[], int] = _now_ms,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._store = store
        self._alert = alert
        self._clock_ms = clock_ms
        self._id_factory = id_factory

        self._tasks: list[Task] = []
        self._loading = True
        self._inflight: set[asyncio.Task[None]] = set()

    # ---- read side ----

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def tasks(self) -> tuple[Task, ...]:
        """Snapshot of the canonical collection (newest first after load)."""
        return tuple(self._tasks)

    @property
    def pending_writes(self) -> int:
        return len(self._inflight)

    def get(self, task_id: str) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    # ---- lifecycle ----

    async def load(self) -> None:
        """Populate the collection once. An unreachable store yields an empty list."""
        try:
            loaded = await self._store.load_all()
        except StoreUnavailable:
            logger.warning("Initial load failed; starting with an empty task list.", exc_info=True)
            loaded = []

        seen: set[str] = set()
        tasks: list[Task] = []
        for t in loaded:
            if t.id in seen:
                logger.warning("Duplicate task id %s in store; keeping the first copy.", t.id)
                continue
            seen.add(t.id)
            tasks.append(t)

        self._tasks = tasks
        self._loading = False
        logger.info("Reconciler loaded %d tasks", len(tasks))

    async def wait_idle(self) -> None:
        """Wait until every dispatched write has settled (and its rollback, if any, ran)."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
            # settlement callbacks are scheduled with call_soon; let them run
            await asyncio.sleep(0)

    # ---- mutations ----

    def add_task(self, draft: TaskDraft) -> Task:
        self._ensure_ready()
        task = draft.to_task(task_id=self._unique_id(), created_at=self._clock_ms())

        self._tasks.insert(0, task)

        def rollback() -> None:
            self._remove_ids({task.id})
            self._alert(MSG_ADD_FAILED)

        self._dispatch(self._store.create_one(task), rollback, what=f"create_one id={task.id}")
        return task

    def add_multiple_tasks(self, drafts: Iterable[TaskDraft]) -> list[Task]:
        self._ensure_ready()
        drafts = list(drafts)
        if not drafts:
            return []

        created_at = self._clock_ms()
        batch: list[Task] = []
        taken: set[str] = set()
        for d in drafts:
            task_id = self._unique_id(taken)
            taken.add(task_id)
            batch.append(d.to_task(task_id=task_id, created_at=created_at))

        self._tasks[0:0] = batch
        batch_ids = frozenset(taken)

        def rollback() -> None:
            self._remove_ids(batch_ids)
            self._alert(MSG_ADD_MANY_FAILED)

        self._dispatch(
            self._store.create_many(list(batch)),
            rollback,
            what=f"create_many n={len(batch)}",
        )
        return batch

    def toggle_completion(self, task_id: str) -> Task | None:
        self._ensure_ready()
        current = self.get(task_id)
        if current is None:
            return None

        previous = current.completed
        updated = self._replace(task_id, completed=not previous)

        def rollback() -> None:
            # Restore the captured value, not "flip again": a later toggle may have landed.
            self._replace(task_id, completed=previous)
            self._alert(MSG_UPDATE_FAILED)

        self._dispatch(
            self._store.update_fields(task_id, {"completed": not previous}),
            rollback,
            what=f"update_fields id={task_id} completed={not previous}",
        )
        return updated

    def edit_task(self, task_id: str, **changes: Any) -> Task | None:
        self._ensure_ready()
        current = self.get(task_id)
        if current is None:
            return None

        changes = normalize_changes(changes)
        if not changes:
            return current

        previous = {name: getattr(current, name) for name in changes}
        updated = self._replace(task_id, **changes)

        def rollback() -> None:
            self._replace(task_id, **previous)
            self._alert(MSG_UPDATE_FAILED)

        self._dispatch(
            self._store.update_fields(task_id, dict(changes)),
            rollback,
            what=f"update_fields id={task_id} fields={sorted(changes)}",
        )
        return updated

    def delete_task(self, task_id: str) -> Task | None:
        self._ensure_ready()
        captured = self.get(task_id)
        if captured is None:
            return None

        self._remove_ids({task_id})

        def rollback() -> None:
            if self.get(captured.id) is None:
                self._tasks.append(captured)
                # position may have shifted meanwhile; stable sort keeps batch order
                self._tasks.sort(key=lambda t: t.created_at, reverse=True)
            self._alert(MSG_DELETE_FAILED)

        self._dispatch(self._store.delete_one(task_id), rollback, what=f"delete_one id={task_id}")
        return captured

    # ---- internals ----

    def _ensure_ready(self) -> None:
        if self._loading:
            raise TasksLoading("tasks are still loading; wait for load() before mutating")

    def _unique_id(self, reserved: set[str] | None = None) -> str:
        while True:
            candidate = self._id_factory()
            if self.get(candidate) is None and (reserved is None or candidate not in reserved):
                return candidate
            logger.warning("Generated id %s collides; regenerating", candidate)

    def _remove_ids(self, ids: set[str] | frozenset[str]) -> None:
        self._tasks = [t for t in self._tasks if t.id not in ids]

    def _replace(self, task_id: str, **fields: Any) -> Task | None:
        """Replace fields of the task with this id in place; no-op if it is gone."""
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                updated = replace(t, **fields)
                self._tasks[i] = updated
                return updated
        return None

    def _dispatch(
        self,
        coro: Coroutine[Any, Any, None],
        rollback: Callable[[], None],
        *,
        what: str,
    ) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._inflight.add(task)

        def settle(fut: asyncio.Task[None]) -> None:
            self._inflight.discard(fut)
            if fut.cancelled():
                logger.warning("Persistence cancelled (%s); rolling back", what)
                rollback()
                return
            exc = fut.exception()
            if exc is None:
                logger.debug("Persisted (%s)", what)
                return
            logger.warning("Persistence failed (%s); rolling back: %s", what, exc, exc_info=exc)
            rollback()

        task.add_done_callback(settle)
        return task
