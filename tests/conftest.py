# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from taskboard.core.config import Settings
from taskboard.db.crud import SqlTaskBackend
from taskboard.db.session import make_engine
from taskboard.main import create_app
from taskboard.services.connectivity import BackendState
from taskboard.services.fallback import MemoryState, MemoryTaskBackend
from taskboard.services.task_store import TaskStore


@pytest.fixture()
def memory_store() -> TaskStore:
    """Store that never reaches a durable backend."""
    return TaskStore(BackendState(), MemoryTaskBackend(MemoryState()))


@pytest.fixture()
def sql_backend(tmp_path: Path):
    backend = SqlTaskBackend(make_engine(f"sqlite:///{tmp_path / 'tasks.sqlite3'}"))
    backend.ping()
    yield backend
    backend.dispose()


@pytest.fixture()
def sql_store(sql_backend: SqlTaskBackend) -> TaskStore:
    state = BackendState(durable=sql_backend)
    state.mark_connected()
    return TaskStore(state, MemoryTaskBackend(MemoryState()))


@pytest.fixture(params=["memory_store", "sql_store"])
def store(request) -> TaskStore:
    """The same store contract, run against each backend."""
    return request.getfixturevalue(request.param)


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None, DATABASE_URL=None)


@pytest.fixture()
def client(settings: Settings):
    with TestClient(create_app(settings)) as c:
        yield c
