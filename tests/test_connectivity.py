# tests/test_connectivity.py

from __future__ import annotations

import time
from pathlib import Path

import pytest

from taskboard.core.errors import NotFound, StorageError
from taskboard.db.crud import SqlTaskBackend
from taskboard.db.session import make_engine
from taskboard.services.connectivity import BackendState, connect_durable_store
from taskboard.services.fallback import MemoryState, MemoryTaskBackend
from taskboard.services.task_store import TaskStore


class FakeDurable:
    """Durable backend whose ping fails a fixed number of times."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.pings = 0

    def ping(self) -> None:
        self.pings += 1
        if self.pings <= self.failures:
            raise StorageError("connection refused", connection_lost=True)


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.mark.asyncio
async def test_missing_database_url_falls_back_immediately() -> None:
    state = BackendState()
    sleep = RecordingSleep()

    assert await connect_durable_store(state, sleep=sleep) is False
    assert state.connected is False
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_retries_with_exponential_backoff_then_gives_up() -> None:
    durable = FakeDurable(failures=100)
    state = BackendState(durable=durable)
    sleep = RecordingSleep()

    connected = await connect_durable_store(state, retries=3, base_delay=1.0, sleep=sleep)

    assert connected is False
    assert state.connected is False
    assert durable.pings == 4
    assert sleep.delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_connects_on_a_later_attempt() -> None:
    durable = FakeDurable(failures=2)
    state = BackendState(durable=durable)
    sleep = RecordingSleep()

    assert await connect_durable_store(state, sleep=sleep) is True
    assert state.connected is True
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_unreachable_store_serves_from_volatile_fallback() -> None:
    state = BackendState(durable=FakeDurable(failures=100))
    await connect_durable_store(state, sleep=RecordingSleep())

    store = TaskStore(state, MemoryTaskBackend(MemoryState()))
    task = store.create("x")
    assert store.get(task.id).text == "x"

    # A restarted process starts with an empty fallback.
    restarted = TaskStore(BackendState(durable=FakeDurable(failures=100)), MemoryTaskBackend(MemoryState()))
    with pytest.raises(NotFound):
        restarted.get(task.id)


@pytest.mark.asyncio
async def test_connects_to_sqlite(tmp_path: Path) -> None:
    backend = SqlTaskBackend(make_engine(f"sqlite:///{tmp_path / 'data' / 'tasks.sqlite3'}"))
    state = BackendState(durable=backend)
    try:
        assert await connect_durable_store(state, sleep=RecordingSleep()) is True
        store = TaskStore(state, MemoryTaskBackend(MemoryState()))
        task = store.create("persisted")
        assert backend.get(task.id) == task
    finally:
        backend.dispose()


class HangingDurable:
    def __init__(self) -> None:
        self.pings = 0

    def ping(self) -> None:
        self.pings += 1
        time.sleep(0.5)


@pytest.mark.asyncio
async def test_each_attempt_is_bounded_by_timeout() -> None:
    durable = HangingDurable()
    state = BackendState(durable=durable)
    sleep = RecordingSleep()

    started = time.monotonic()
    connected = await connect_durable_store(state, retries=1, timeout=0.05, sleep=sleep)

    assert connected is False
    assert durable.pings == 2
    assert sleep.delays == [1.0]
    assert time.monotonic() - started < 0.5
    assert state.probing is False
