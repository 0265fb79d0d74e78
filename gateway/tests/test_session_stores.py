from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.orm import Session, sessionmaker

from gateway.infrastructure.db import build_engine, build_session_factory, init_db
from gateway.infrastructure.resilience import CircuitBreaker
from gateway.infrastructure.sessions import (
    InMemorySessionStore,
    ResilientSessionStore,
    SqlAlchemySessionStore,
)
from gateway.shared.config import DatabaseConfig
from gateway.shared.errors import SessionStoreUnavailableError


class ManualClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class SlowStore(InMemorySessionStore):
    def __init__(self, delay: float) -> None:
        super().__init__()
        self.delay = delay

    async def get(self, session_id: str) -> str | None:
        await asyncio.sleep(self.delay)
        return await super().get(session_id)


class FailingStore(InMemorySessionStore):
    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.calls = 0

    async def get(self, session_id: str) -> str | None:
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("store offline")
        return await super().get(session_id)


@pytest.fixture()
def sql_factory() -> sessionmaker[Session]:
    engine = build_engine(DatabaseConfig(url="sqlite://"))
    init_db(engine)
    return build_session_factory(engine)


@pytest.mark.asyncio
async def test_memory_store_roundtrip_and_idempotent_delete() -> None:
    store = InMemorySessionStore()

    await store.set("a", "payload-1", 60)
    await store.set("a", "payload-2", 60)
    assert await store.get("a") == "payload-2"

    await store.delete("a")
    await store.delete("a")
    assert await store.get("a") is None


@pytest.mark.asyncio
async def test_memory_store_never_returns_expired_entries() -> None:
    clock = ManualClock()
    store = InMemorySessionStore(clock=clock)
    await store.set("a", "payload", 10)
    await store.set("b", "payload", 100)

    clock.now += 10
    assert await store.get("a") is None
    assert await store.get("b") == "payload"

    clock.now += 100
    assert store.purge_expired() == 1
    assert len(store) == 0


@pytest.mark.asyncio
async def test_sqlalchemy_store_roundtrip(sql_factory) -> None:
    store = SqlAlchemySessionStore(sql_factory)

    await store.set("sid-1", '{"data": {}}', 60)
    await store.set("sid-1", '{"data": {"k": 1}}', 60)

    assert await store.get("sid-1") == '{"data": {"k": 1}}'
    assert await store.get("missing") is None

    await store.delete("sid-1")
    await store.delete("sid-1")
    assert await store.get("sid-1") is None
    await store.ping()


@pytest.mark.asyncio
async def test_sqlalchemy_store_filters_expired_rows(sql_factory) -> None:
    store = SqlAlchemySessionStore(sql_factory)

    await store.set("stale", "payload", -5)
    await store.set("fresh", "payload", 60)

    assert await store.get("stale") is None
    assert await store.get("fresh") == "payload"
    assert store.purge_expired() == 1


@pytest.mark.asyncio
async def test_resilient_store_reports_timeout_as_unavailable() -> None:
    store = ResilientSessionStore(SlowStore(delay=1.0), timeout=0.05)

    with pytest.raises(SessionStoreUnavailableError) as excinfo:
        await store.get("anything")

    assert excinfo.value.operation == "get"
    assert excinfo.value.status == 503


@pytest.mark.asyncio
async def test_resilient_store_retries_transient_failures() -> None:
    inner = FailingStore(failures=1)
    await inner.set("sid", "payload", 60)
    store = ResilientSessionStore(inner, timeout=1.0, retries=1, backoff_base=0.0, backoff_cap=0.0)

    assert await store.get("sid") == "payload"
    assert inner.calls == 2


@pytest.mark.asyncio
async def test_resilient_store_opens_circuit_after_repeated_failures() -> None:
    inner = FailingStore(failures=100)
    breaker = CircuitBreaker(failure_threshold=2, reset_timeout=60.0, name="test")
    store = ResilientSessionStore(inner, timeout=1.0, breaker=breaker)

    for _ in range(2):
        with pytest.raises(SessionStoreUnavailableError):
            await store.get("sid")
    assert breaker.is_open

    with pytest.raises(SessionStoreUnavailableError):
        await store.get("sid")
    assert inner.calls == 2


@pytest.mark.asyncio
async def test_resilient_store_write_passes_through() -> None:
    inner = InMemorySessionStore()
    store = ResilientSessionStore(inner, timeout=1.0)

    await store.set("sid", "payload", 60)

    assert await inner.get("sid") == "payload"
    assert store.inner is inner
