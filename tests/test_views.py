# tests/test_views.py

from __future__ import annotations

from datetime import date, timedelta

from zentask.tasks.task_models import Priority, ViewMode
from zentask.tasks.views import (
    completed_tasks,
    dashboard_stats,
    is_overdue,
    overdue_tasks,
    project,
    today_tasks,
    upcoming_tasks,
)

from .fakes import make_task

TODAY = date(2026, 10, 19)
YESTERDAY = TODAY - timedelta(days=1)
TOMORROW = TODAY + timedelta(days=1)


def _horizon_tasks():
    return [
        make_task("yesterday", created_at=1, due=YESTERDAY),
        make_task("today", created_at=2, due=TODAY),
        make_task("tomorrow", created_at=3, due=TOMORROW),
        make_task("today-done", created_at=4, due=TODAY, completed=True),
    ]


def test_horizon_views_split_by_due_date_and_completion() -> None:
    tasks = _horizon_tasks()

    assert [t.id for t in today_tasks(tasks, TODAY)] == ["today"]
    assert [t.id for t in completed_tasks(tasks)] == ["today-done"]
    assert [t.id for t in upcoming_tasks(tasks, TODAY)] == ["tomorrow"]


def test_views_do_not_mutate_the_collection() -> None:
    tasks = _horizon_tasks()
    before = list(tasks)

    upcoming_tasks(tasks, TODAY)
    completed_tasks(tasks)
    dashboard_stats(tasks)

    assert tasks == before


def test_upcoming_sorted_by_due_date_ascending() -> None:
    tasks = [
        make_task("far", created_at=1, due=TODAY + timedelta(days=30)),
        make_task("near", created_at=2, due=TOMORROW),
        make_task("mid", created_at=3, due=TODAY + timedelta(days=7)),
    ]

    assert [t.id for t in upcoming_tasks(tasks, TODAY)] == ["near", "mid", "far"]


def test_completed_sorted_by_created_at_descending() -> None:
    tasks = [
        make_task("old", created_at=10, completed=True),
        make_task("new", created_at=30, completed=True),
        make_task("mid", created_at=20, completed=True),
        make_task("open", created_at=40),
    ]

    assert [t.id for t in completed_tasks(tasks)] == ["new", "mid", "old"]


def test_overdue_only_counts_incomplete_past_tasks() -> None:
    tasks = _horizon_tasks() + [make_task("old-done", created_at=5, due=YESTERDAY, completed=True)]

    assert [t.id for t in overdue_tasks(tasks, TODAY)] == ["yesterday"]
    assert is_overdue(tasks[0], TODAY)
    assert not is_overdue(tasks[1], TODAY)


def test_project_dispatches_by_view_mode() -> None:
    tasks = _horizon_tasks()

    assert [t.id for t in project(tasks, ViewMode.TODAY, TODAY)] == ["today"]
    assert [t.id for t in project(tasks, ViewMode.UPCOMING, TODAY)] == ["tomorrow"]
    assert [t.id for t in project(tasks, ViewMode.COMPLETED, TODAY)] == ["today-done"]
    assert project(tasks, ViewMode.ALL, TODAY) == tasks
    assert project(tasks, ViewMode.DASHBOARD, TODAY) == tasks


def test_stats_for_empty_collection() -> None:
    stats = dashboard_stats([])

    assert stats.total == 0
    assert stats.completed == 0
    assert stats.pending == 0
    assert stats.completion_rate == 0
    assert stats.completion_rate_label == "0%"
    assert stats.pending_by_priority == {Priority.HIGH: 0, Priority.MEDIUM: 0, Priority.LOW: 0}


def test_stats_counts_and_rate() -> None:
    tasks = [
        make_task("a", created_at=1, completed=True, priority=Priority.HIGH),
        make_task("b", created_at=2, priority=Priority.HIGH),
        make_task("c", created_at=3, priority=Priority.LOW),
        make_task("d", created_at=4, priority=Priority.MEDIUM),
    ]

    stats = dashboard_stats(tasks)

    assert (stats.total, stats.completed, stats.pending) == (4, 1, 3)
    assert stats.pending_by_priority == {Priority.HIGH: 1, Priority.MEDIUM: 1, Priority.LOW: 1}
    assert stats.completion_rate_label == "25%"


def test_completion_rate_rounds_half_up() -> None:
    one_of_eight = [make_task(str(i), created_at=i, completed=(i == 0)) for i in range(8)]
    two_of_three = [make_task(str(i), created_at=i, completed=(i < 2)) for i in range(3)]

    assert dashboard_stats(one_of_eight).completion_rate == 13
    assert dashboard_stats(two_of_three).completion_rate == 67
