# src/zentask/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..llm.advisor import TaskAdvisor
from ..tasks.reconciler import TaskReconciler
from ..tasks.task_models import TaskDraft


@dataclass
class AppState:
    # Settings are kept on the state so handlers don't re-read the environment.
    settings: Any

    engine: TaskReconciler
    advisor: TaskAdvisor

    # Last AI breakdown, waiting for /accept.
    suggestions: list[str] = field(default_factory=list)
    suggestion_template: TaskDraft | None = None

    def clear_suggestions(self) -> None:
        self.suggestions = []
        self.suggestion_template = None
