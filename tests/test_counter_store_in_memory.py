"""Unit tests for the in-memory counter store."""

import asyncio

import pytest

from admission_gate.adapters.counter_store.in_memory import InMemoryCounterStore
from conftest import FakeTime


@pytest.mark.asyncio
async def test_counts_sequentially_from_one() -> None:
    store = InMemoryCounterStore(clock=FakeTime())

    assert await store.incr_and_get("k", expire_seconds=120) == 1
    assert await store.incr_and_get("k", expire_seconds=120) == 2
    assert await store.incr_and_get("k", expire_seconds=120) == 3


@pytest.mark.asyncio
async def test_isolated_by_key() -> None:
    store = InMemoryCounterStore(clock=FakeTime())

    assert await store.incr_and_get("k1", expire_seconds=120) == 1
    assert await store.incr_and_get("k1", expire_seconds=120) == 2
    assert await store.incr_and_get("k2", expire_seconds=120) == 1


@pytest.mark.asyncio
async def test_expiry_set_on_first_increment_only() -> None:
    clock = FakeTime(1000.0)
    store = InMemoryCounterStore(clock=clock)

    await store.incr_and_get("k", expire_seconds=120)
    clock.advance(30)
    await store.incr_and_get("k", expire_seconds=120)

    assert store.ttl("k") == pytest.approx(90.0)


@pytest.mark.asyncio
async def test_expired_counter_restarts_at_one() -> None:
    clock = FakeTime(1000.0)
    store = InMemoryCounterStore(clock=clock)

    await store.incr_and_get("k", expire_seconds=120)
    await store.incr_and_get("k", expire_seconds=120)

    clock.advance(120)
    assert await store.incr_and_get("k", expire_seconds=120) == 1


@pytest.mark.asyncio
async def test_snapshot_lists_live_keys_under_prefix() -> None:
    clock = FakeTime(1000.0)
    store = InMemoryCounterStore(clock=clock)

    await store.incr_and_get("rl:a:1", expire_seconds=10)
    await store.incr_and_get("rl:b:1", expire_seconds=100)
    await store.incr_and_get("rl:b:1", expire_seconds=100)
    await store.incr_and_get("other:c", expire_seconds=100)

    clock.advance(50)
    assert await store.snapshot("rl:") == {"rl:b:1": 2}


@pytest.mark.asyncio
async def test_concurrent_increments_are_unique() -> None:
    store = InMemoryCounterStore(clock=FakeTime())

    counts = await asyncio.gather(
        *(store.incr_and_get("k", expire_seconds=120) for _ in range(50))
    )

    assert sorted(counts) == list(range(1, 51))


@pytest.mark.asyncio
async def test_ping_is_always_up() -> None:
    assert await InMemoryCounterStore().ping() is True


@pytest.mark.asyncio
async def test_empty_key_rejected() -> None:
    store = InMemoryCounterStore()

    with pytest.raises(ValueError):
        await store.incr_and_get("", expire_seconds=120)


@pytest.mark.asyncio
async def test_old_windows_are_swept() -> None:
    clock = FakeTime(1000.0)
    store = InMemoryCounterStore(clock=clock)

    for window_id in range(1000):
        await store.incr_and_get(f"rl:k:{window_id}", expire_seconds=120)
        clock.advance(60)

    assert store.size() <= 3


@pytest.mark.asyncio
async def test_sweep_keeps_live_counters() -> None:
    clock = FakeTime(1000.0)
    store = InMemoryCounterStore(clock=clock)

    await store.incr_and_get("rl:a:1", expire_seconds=120)
    clock.advance(70)
    await store.incr_and_get("rl:b:2", expire_seconds=120)

    assert store.size() == 2
    assert await store.incr_and_get("rl:a:1", expire_seconds=120) == 2
