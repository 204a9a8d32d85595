"""Unit tests for the PublicLookupCache (TTL, coalescing, invalidation)."""

import asyncio

import pytest

from scanback.application.services import PublicLookupCache
from scanback.domain.entities import ContactInfo, TagKind, TagRecord
from scanback.domain.exceptions import StoreTimeoutError, TagNotFoundError
from tests.fakes import FakeRecordStore, ManualClock

CODE = "A1B2C3D4E5F6"


@pytest.fixture
def store() -> FakeRecordStore:
    store = FakeRecordStore()
    store.seed(
        TagRecord(
            code=CODE,
            kind=TagKind.ITEM,
            details={"name": "Backpack"},
            contact=ContactInfo(name="Jane", phone="0821234567", email="jane@example.com"),
        )
    )
    return store


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def cache(store: FakeRecordStore, clock: ManualClock) -> PublicLookupCache:
    return PublicLookupCache(store.find_public_view, ttl_seconds=600, clock=clock)


async def _let_tasks_run(rounds: int = 3) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_second_lookup_is_served_from_cache(cache, store):
    first = await cache.get(CODE)
    second = await cache.get(CODE)

    assert first == second
    assert first.details["name"] == "Backpack"
    assert store.calls["find_public_view"] == 1
    assert cache.stats.hits == 1
    assert cache.stats.misses == 1


@pytest.mark.asyncio
async def test_concurrent_lookups_share_one_fetch(cache, store):
    store.public_gate = asyncio.Event()
    waiters = [asyncio.create_task(cache.get(CODE)) for _ in range(20)]
    await _let_tasks_run()

    assert cache.in_flight(CODE)
    assert store.calls["find_public_view"] == 1

    store.public_gate.set()
    views = await asyncio.gather(*waiters)

    assert all(v == views[0] for v in views)
    assert store.calls["find_public_view"] == 1
    assert cache.stats.coalesced == 19
    assert not cache.in_flight(CODE)


@pytest.mark.asyncio
async def test_entry_expires_exactly_at_ttl(cache, store, clock):
    await cache.get(CODE)

    clock.advance(599)
    await cache.get(CODE)
    assert store.calls["find_public_view"] == 1

    clock.advance(1)
    await cache.get(CODE)
    assert store.calls["find_public_view"] == 2


@pytest.mark.asyncio
async def test_unknown_code_raises_and_is_not_cached(cache, store):
    with pytest.raises(TagNotFoundError):
        await cache.get("FFFFFFFFFFFF")
    with pytest.raises(TagNotFoundError):
        await cache.get("FFFFFFFFFFFF")

    assert store.calls["find_public_view"] == 2
    assert "FFFFFFFFFFFF" not in cache


@pytest.mark.asyncio
async def test_fetch_failure_reaches_every_waiter_and_clears_registry(cache, store):
    store.public_gate = asyncio.Event()
    store.fail_public_with = RuntimeError("connection reset")
    waiters = [asyncio.create_task(cache.get(CODE)) for _ in range(3)]
    await _let_tasks_run()
    store.public_gate.set()

    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert all(isinstance(r, RuntimeError) for r in results)
    assert not cache.in_flight(CODE)
    assert CODE not in cache

    store.fail_public_with = None
    assert (await cache.get(CODE)).code == CODE
    assert store.calls["find_public_view"] == 2


@pytest.mark.asyncio
async def test_slow_fetch_times_out_for_all_waiters(store, clock):
    store.public_delay = 1.0
    cache = PublicLookupCache(
        store.find_public_view, ttl_seconds=600, fetch_timeout=0.05, clock=clock
    )

    results = await asyncio.gather(
        cache.get(CODE), cache.get(CODE), return_exceptions=True
    )

    assert all(isinstance(r, StoreTimeoutError) for r in results)
    assert results[0].operation == "find_public_view"
    assert not cache.in_flight(CODE)


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_fetch(cache, store):
    store.public_gate = asyncio.Event()
    impatient = asyncio.create_task(cache.get(CODE))
    await _let_tasks_run()

    impatient.cancel()
    with pytest.raises(asyncio.CancelledError):
        await impatient

    patient = asyncio.create_task(cache.get(CODE))
    await _let_tasks_run()
    store.public_gate.set()

    assert (await patient).code == CODE
    assert store.calls["find_public_view"] == 1
    assert CODE in cache


@pytest.mark.asyncio
async def test_invalidate_during_fetch_keeps_stale_view_out(cache, store):
    store.public_gate = asyncio.Event()
    reader = asyncio.create_task(cache.get(CODE))
    await _let_tasks_run()

    cache.invalidate(CODE)
    assert not cache.in_flight(CODE)

    store.public_gate.set()
    await reader
    assert CODE not in cache

    await cache.get(CODE)
    assert store.calls["find_public_view"] == 2


@pytest.mark.asyncio
async def test_invalidate_reports_whether_an_entry_was_dropped(cache):
    assert cache.invalidate(CODE) is False
    await cache.get(CODE)
    assert cache.invalidate(CODE) is True
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_sweep_drops_only_expired_entries(store, clock):
    for code in ("AAAAAAAAAAAA", "BBBBBBBBBBBB"):
        store.seed(
            TagRecord(
                code=code,
                kind=TagKind.PET,
                details={"name": code},
                contact=ContactInfo(name="Jo", phone="0820000000", email="jo@example.com"),
            )
        )
    cache = PublicLookupCache(
        store.find_public_view, ttl_seconds=600, sweep_interval=10_000, clock=clock
    )

    await cache.get("AAAAAAAAAAAA")
    clock.advance(300)
    await cache.get("BBBBBBBBBBBB")
    clock.advance(300)

    assert cache.sweep() == 1
    assert "AAAAAAAAAAAA" not in cache
    assert "BBBBBBBBBBBB" in cache


@pytest.mark.asyncio
async def test_insert_triggers_periodic_sweep(store, clock):
    store.seed(
        TagRecord(
            code="AAAAAAAAAAAA",
            kind=TagKind.ITEM,
            details={"name": "Keys"},
            contact=ContactInfo(name="Jo", phone="0820000000", email="jo@example.com"),
        )
    )
    cache = PublicLookupCache(
        store.find_public_view, ttl_seconds=600, sweep_interval=60, clock=clock
    )

    await cache.get("AAAAAAAAAAAA")
    clock.advance(700)
    await cache.get(CODE)

    assert "AAAAAAAAAAAA" not in cache
    assert CODE in cache
    assert cache.stats.evictions == 1


@pytest.mark.asyncio
async def test_oldest_entries_are_dropped_beyond_max_entries(store, clock):
    codes = [f"{i:012X}" for i in range(3)]
    for code in codes:
        store.seed(
            TagRecord(
                code=code,
                kind=TagKind.ITEM,
                details={"name": code},
                contact=ContactInfo(name="Jo", phone="0820000000", email="jo@example.com"),
            )
        )
    cache = PublicLookupCache(
        store.find_public_view, ttl_seconds=600, max_entries=2, clock=clock
    )

    for code in codes:
        await cache.get(code)

    assert len(cache) == 2
    assert codes[0] not in cache


def test_rejects_non_positive_ttl(store):
    with pytest.raises(ValueError):
        PublicLookupCache(store.find_public_view, ttl_seconds=0)
