# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from zentask.core.state import AppState
from zentask.llm.advisor import TaskAdvisor
from zentask.tasks.reconciler import TaskReconciler

from .fakes import AlertRecorder, Clock, FlakyTaskStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap helpers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="zentask",
        log_level="INFO",
        store_backend="local",
        data_dir=tmp_path / "data",
        storage_key="zentask_ai_data",
        tasks_db_path=tmp_path / "data" / "tasks.sqlite3",
        db_timeout_seconds=1.0,
        llm_api_key=None,
        llm_base_url="https://openrouter.ai/api/v1",
        llm_models=["test/model-a", "test/model-b"],
        llm_connect_timeout_seconds=1.0,
        llm_read_timeout_seconds=1.0,
        extra_headers={},
    )


@pytest.fixture()
def alerts() -> AlertRecorder:
    return AlertRecorder()


@pytest.fixture()
def flaky_store() -> FlakyTaskStore:
    return FlakyTaskStore()


@pytest.fixture()
def state(settings: SimpleNamespace, flaky_store: FlakyTaskStore, alerts: AlertRecorder) -> AppState:
    """
    AppState wired with an in-memory store and no AI backend.

    The engine is not loaded yet; async tests await state.engine.load().
    """
    return AppState(
        settings=settings,
        engine=TaskReconciler(flaky_store, alert=alerts, clock_ms=Clock()),
        advisor=TaskAdvisor(None),
    )
