# src/zentask/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any


class Priority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, raw: str | Priority | None) -> Priority:
        """Accept canonical names case-insensitively. None/blank means the default."""
        if isinstance(raw, cls):
            return raw
        if raw is None or not str(raw).strip():
            return cls.MEDIUM
        wanted = str(raw).strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        raise ValueError(f"unknown priority: {raw!r}")


class Category(StrEnum):
    PERSONAL = "Personal"
    WORK = "Work"
    SHOPPING = "Shopping"
    HEALTH = "Health"
    FINANCE = "Finance"

    @classmethod
    def parse(cls, raw: str | Category | None) -> Category:
        if isinstance(raw, cls):
            return raw
        if raw is None or not str(raw).strip():
            return cls.PERSONAL
        wanted = str(raw).strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        raise ValueError(f"unknown category: {raw!r}")


class ViewMode(StrEnum):
    DASHBOARD = "dashboard"
    TODAY = "today"
    UPCOMING = "upcoming"
    COMPLETED = "completed"
    ALL = "all"


def parse_due_date(raw: str | date | None) -> date:
    """YYYY-MM-DD -> date. None/blank means today (the add form's default)."""
    if isinstance(raw, date):
        return raw
    if raw is None or not str(raw).strip():
        return date.today()
    try:
        return date.fromisoformat(str(raw).strip())
    except ValueError:
        raise ValueError(f"due date must be YYYY-MM-DD, got {raw!r}") from None


def _clean_title(raw: str) -> str:
    title = (raw or "").strip()
    if not title:
        raise ValueError("title is required")
    return title


def _clean_description(raw: str | None) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


@dataclass(frozen=True, slots=True)
class TaskDraft:
    """
    User-supplied fields of a task.

    id and created_at are assigned by the reconciler when the draft is turned
    into a Task, so a draft can be validated before anything is mutated.
    """

    title: str
    due_date: date = field(default_factory=date.today)
    priority: Priority = Priority.MEDIUM
    category: Category = Category.PERSONAL
    description: str | None = None
    completed: bool = False

    def __post_init__(self) -> None:
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "title", _clean_title(self.title))
        object.__setattr__(self, "due_date", parse_due_date(self.due_date))
        object.__setattr__(self, "priority", Priority.parse(self.priority))
        object.__setattr__(self, "category", Category.parse(self.category))
        object.__setattr__(self, "description", _clean_description(self.description))
        object.__setattr__(self, "completed", bool(self.completed))

    def to_task(self, *, task_id: str, created_at: int) -> Task:
        return Task(
            id=task_id,
            title=self.title,
            description=self.description,
            due_date=self.due_date,
            completed=self.completed,
            priority=self.priority,
            category=self.category,
            created_at=created_at,
        )


# Fields a store may update in place. id and created_at are immutable.
EDITABLE_FIELDS = ("title", "description", "due_date", "completed", "priority", "category")


def normalize_changes(changes: dict[str, Any]) -> dict[str, Any]:
    """Validate a partial update and coerce values to model types."""
    out: dict[str, Any] = {}
    for name, value in changes.items():
        if name not in EDITABLE_FIELDS:
            raise ValueError(f"field is not editable: {name!r}")
        if name == "title":
            out[name] = _clean_title(value)
        elif name == "description":
            out[name] = _clean_description(value)
        elif name == "due_date":
            out[name] = parse_due_date(value)
        elif name == "completed":
            out[name] = bool(value)
        elif name == "priority":
            out[name] = Priority.parse(value)
        elif name == "category":
            out[name] = Category.parse(value)
    return out


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    due_date: date
    priority: Priority
    category: Category
    created_at: int  # epoch milliseconds

    completed: bool = False
    description: str | None = None

    def to_record(self) -> dict[str, Any]:
        """Camel-cased JSON record used by the local blob."""
        record: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "dueDate": self.due_date.isoformat(),
            "completed": self.completed,
            "priority": self.priority.value,
            "category": self.category.value,
            "createdAt": self.created_at,
        }
        if self.description is not None:
            record["description"] = self.description
        return record

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> Task:
        """Inverse of to_record. Raises KeyError/ValueError/TypeError on bad input."""
        return cls(
            id=str(data["id"]),
            title=_clean_title(data["title"]),
            description=_clean_description(data.get("description")),
            due_date=date.fromisoformat(str(data["dueDate"])),
            completed=bool(data.get("completed", False)),
            priority=Priority.parse(data.get("priority")),
            category=Category.parse(data.get("category")),
            created_at=int(data["createdAt"]),
        )
