# src/zentask/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- picks the task store backend from settings,
- wires the reconciler and the AI advisor into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import AlertSink, LLMClient, TaskStore
from ..core.state import AppState
from ..errors import AdvisoryUnavailable
from ..llm.advisor import TaskAdvisor
from ..llm.client import OpenRouterLLMClient
from ..tasks.local_store import LocalTaskStore
from ..tasks.reconciler import TaskReconciler
from ..tasks.task_store import SqliteTaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_task_store(settings) -> TaskStore:
    """The one place where the persistence backend is chosen."""
    backend = getattr(settings, "store_backend", "local")
    if backend == "table":
        logger.info("Using relational task table at %s", settings.tasks_db_path)
        return SqliteTaskStore(
            settings.tasks_db_path,
            timeout_seconds=getattr(settings, "db_timeout_seconds", 30.0),
        )
    logger.info("Using local task blob key=%s in %s", settings.storage_key, settings.data_dir)
    return LocalTaskStore(settings.data_dir, settings.storage_key)


def create_llm_client(settings) -> LLMClient | None:
    """None means the AI assistant is not configured."""
    try:
        return OpenRouterLLMClient(settings)
    except AdvisoryUnavailable as e:
        logger.info("AI assistant disabled: %s", e)
        return None


def create_initial_state(*, alert: AlertSink, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    The reconciler is returned unloaded; the caller awaits state.engine.load().
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    engine = TaskReconciler(create_task_store(settings), alert=alert)
    advisor = TaskAdvisor(create_llm_client(settings))

    return AppState(settings=settings, engine=engine, advisor=advisor)
