# src/zentask/tasks/views.py

"""Pure projections over the canonical task list - no I/O, no caching, no mutation."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from .task_models import Priority, Task, ViewMode


def _today(today: date | None) -> date:
    return today or date.today()


def today_tasks(tasks: Iterable[Task], today: date | None = None) -> list[Task]:
    """Incomplete tasks due today (local calendar date)."""
    today = _today(today)
    return [t for t in tasks if not t.completed and t.due_date == today]


def upcoming_tasks(tasks: Iterable[Task], today: date | None = None) -> list[Task]:
    """Incomplete tasks due after today, soonest first."""
    today = _today(today)
    return sorted(
        (t for t in tasks if not t.completed and t.due_date > today),
        key=lambda t: t.due_date,
    )


def completed_tasks(tasks: Iterable[Task]) -> list[Task]:
    """Completed tasks, most recently created first."""
    return sorted((t for t in tasks if t.completed), key=lambda t: t.created_at, reverse=True)


def is_overdue(task: Task, today: date | None = None) -> bool:
    return not task.completed and task.due_date < _today(today)


def overdue_tasks(tasks: Iterable[Task], today: date | None = None) -> list[Task]:
    today = _today(today)
    return sorted((t for t in tasks if is_overdue(t, today)), key=lambda t: t.due_date)


def project(tasks: Sequence[Task], view: ViewMode, today: date | None = None) -> list[Task]:
    """Task list for a view. Dashboard and 'all' return the collection as-is."""
    if view == ViewMode.TODAY:
        return today_tasks(tasks, today)
    if view == ViewMode.UPCOMING:
        return upcoming_tasks(tasks, today)
    if view == ViewMode.COMPLETED:
        return completed_tasks(tasks)
    return list(tasks)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


@dataclass(frozen=True, slots=True)
class DashboardStats:
    total: int
    completed: int
    pending: int
    pending_by_priority: dict[Priority, int]
    completion_rate: int  # whole percent

    @property
    def completion_rate_label(self) -> str:
        return f"{self.completion_rate}%"


def dashboard_stats(tasks: Iterable[Task]) -> DashboardStats:
    tasks = list(tasks)
    total = len(tasks)
    completed = sum(1 for t in tasks if t.completed)
    pending = total - completed

    by_priority = {p: 0 for p in (Priority.HIGH, Priority.MEDIUM, Priority.LOW)}
    for t in tasks:
        if not t.completed:
            by_priority[t.priority] += 1

    rate = _round_half_up(completed / total * 100) if total > 0 else 0

    return DashboardStats(
        total=total,
        completed=completed,
        pending=pending,
        pending_by_priority=by_priority,
        completion_rate=rate,
    )
