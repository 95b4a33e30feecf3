# src/zentask/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The reconciler and the advisor depend on Protocols instead of concrete
implementations, so storage backends and LLM providers stay swappable and
tests can substitute deterministic fakes.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

from ..tasks.task_models import Task

AlertSink = Callable[[str], None]
# Synchronous user-facing notification; called on every rollback.


class TaskStore(Protocol):
    """
    Persistence adapter for tasks.

    Read failures raise StoreUnavailable, write failures raise WriteRejected.
    create_many must be all-or-nothing as observed by the caller.
    """

    async def load_all(self) -> list[Task]: ...
    async def create_one(self, task: Task) -> None: ...
    async def create_many(self, tasks: Sequence[Task]) -> None: ...
    async def update_fields(self, task_id: str, fields: Mapping[str, Any]) -> None: ...
    async def delete_one(self, task_id: str) -> None: ...


class LLMClient(Protocol):
    """Blocking text-generation client (OpenAI-compatible)."""

    def complete(self, prompt: str, *, json_schema: dict[str, Any] | None = None) -> str: ...
