"""Progress store: key namespacing and failure absorption."""

from __future__ import annotations

import asyncio

from prometheus_client import REGISTRY

from learning_progress.services.progress_store import (
    ACTIVITY,
    COMPLETION,
    InMemoryKeyValueStore,
    KeyValueStore,
    ProgressStore,
    list_tracked_users,
)
from tests.conftest import UnavailableStore


def _errors(operation: str) -> float:
    value = REGISTRY.get_sample_value(
        "progress_store_errors_total", {"operation": operation}
    )
    return value or 0.0


def test_in_memory_store_satisfies_protocol() -> None:
    assert isinstance(InMemoryKeyValueStore(), KeyValueStore)


def test_keys_are_namespaced_by_user_and_entity() -> None:
    store = ProgressStore(InMemoryKeyValueStore(), "alice")
    assert store.key(COMPLETION, "c", "m", "l") == "progress:alice:completion:c:m:l"
    assert store.key(ACTIVITY, "2024-01-02") == "progress:alice:activity:2024-01-02"


def test_user_ids_cannot_collide_through_separators() -> None:
    backend = InMemoryKeyValueStore()
    a = ProgressStore(backend, "a")
    a_b = ProgressStore(backend, "a:b")

    async def scenario() -> dict[str, str]:
        await a_b.set(a_b.key(ACTIVITY, "2024-01-01"), "10")
        return await a.scan(ACTIVITY)

    assert asyncio.run(scenario()) == {}


def test_absent_key_is_distinct_from_zero() -> None:
    store = ProgressStore(InMemoryKeyValueStore(), "u")

    async def scenario() -> tuple[str | None, str | None]:
        key = store.key(ACTIVITY, "2024-01-01")
        before = await store.get(key)
        await store.set(key, "0")
        return before, await store.get(key)

    assert asyncio.run(scenario()) == (None, "0")


def test_incr_by_is_additive() -> None:
    store = ProgressStore(InMemoryKeyValueStore(), "u")
    key = store.key(ACTIVITY, "2024-01-01")

    async def scenario() -> int | None:
        await store.incr_by(key, 30)
        await store.incr_by(key, 30)
        return await store.incr_by(key, 5)

    assert asyncio.run(scenario()) == 65


def test_incr_by_restarts_malformed_counter() -> None:
    backend = InMemoryKeyValueStore()
    store = ProgressStore(backend, "u")
    key = store.key(ACTIVITY, "2024-01-01")
    backend._store[key] = "not-a-number"

    assert asyncio.run(store.incr_by(key, 15)) == 15
    assert backend._store[key] == "15"


def test_scan_strips_namespace_prefix() -> None:
    store = ProgressStore(InMemoryKeyValueStore(), "u")

    async def scenario() -> dict[str, str]:
        await store.set(store.key(ACTIVITY, "2024-01-01"), "1")
        await store.set(store.key(COMPLETION, "c", "m", "l"), "true")
        return await store.scan(ACTIVITY)

    assert asyncio.run(scenario()) == {"2024-01-01": "1"}


def test_reads_degrade_to_absent_when_backend_is_down() -> None:
    store = ProgressStore(UnavailableStore(), "u")
    before = _errors("get")

    assert asyncio.run(store.get("anything")) is None
    assert asyncio.run(store.scan(ACTIVITY)) == {}
    assert _errors("get") - before == 1


def test_writes_are_dropped_silently_when_backend_is_down() -> None:
    store = ProgressStore(UnavailableStore(), "u")
    before = _errors("set")

    assert asyncio.run(store.set("k", "v")) is False
    assert asyncio.run(store.incr_by("k", 1)) is None
    assert _errors("set") - before == 1


def test_list_tracked_users() -> None:
    backend = InMemoryKeyValueStore()

    async def scenario() -> list[str]:
        await ProgressStore(backend, "bob").mark_tracked()
        await ProgressStore(backend, "alice").mark_tracked()
        await ProgressStore(backend, "alice").mark_tracked()
        return await list_tracked_users(backend)

    assert asyncio.run(scenario()) == ["alice", "bob"]


def test_list_tracked_users_empty_when_backend_is_down() -> None:
    assert asyncio.run(list_tracked_users(UnavailableStore())) == []
