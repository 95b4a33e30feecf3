# tests/test_bootstrap.py

from __future__ import annotations

import pytest

from zentask.cli.bootstrap import create_initial_state, create_llm_client, create_task_store
from zentask.llm.client import OpenRouterLLMClient
from zentask.tasks.local_store import LocalTaskStore
from zentask.tasks.task_store import SqliteTaskStore

from .fakes import AlertRecorder


def test_local_backend_is_the_default(settings) -> None:
    store = create_task_store(settings)

    assert isinstance(store, LocalTaskStore)
    assert store.path == settings.data_dir / "zentask_ai_data.json"


def test_table_backend_uses_sqlite(settings) -> None:
    settings.store_backend = "table"

    store = create_task_store(settings)

    assert isinstance(store, SqliteTaskStore)
    assert settings.tasks_db_path.exists()


def test_llm_client_is_none_without_key(settings) -> None:
    assert create_llm_client(settings) is None


def test_llm_client_built_with_key(settings) -> None:
    settings.llm_api_key = "sk-test"

    client = create_llm_client(settings)

    assert isinstance(client, OpenRouterLLMClient)
    assert client.models == ["test/model-a", "test/model-b"]


@pytest.mark.asyncio
async def test_initial_state_is_unloaded_and_offline(settings) -> None:
    state = create_initial_state(settings=settings, alert=AlertRecorder())

    assert settings.data_dir.is_dir()
    assert state.engine.loading
    assert not state.advisor.configured
    assert state.suggestions == []

    await state.engine.load()
    assert state.engine.tasks == ()
