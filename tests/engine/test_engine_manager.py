"""Tests for EngineManager: identity guard, caching, degradation, coalescing."""
from __future__ import annotations

import asyncio

import pytest

from tabshield.engine.manager import EngineManager
from tabshield.messaging.bus import RULES_COUNT_UPDATE, NotificationBus
from tabshield.store.list_cache import ListCache
from tabshield.store.memory_storage import MemoryStorage

from tests.conftest import (
    LIST_A,
    LIST_A_URL,
    LIST_B,
    LIST_B_URL,
    LIST_C,
    LIST_C_URL,
    ListServer,
)


def _manager(server: ListServer, storage: MemoryStorage | None = None, bus=None):
    cache = ListCache(storage if storage is not None else MemoryStorage())
    return EngineManager(cache, server.fetcher(), bus, build_in_thread=False)


@pytest.mark.asyncio
async def test_current_is_none_before_first_build(list_server):
    manager = _manager(list_server)
    assert manager.current() is None
    assert manager.rules_count == 0


@pytest.mark.asyncio
async def test_rebuild_installs_engine(list_server):
    manager = _manager(list_server)
    engine = await manager.rebuild([LIST_A_URL, LIST_B_URL])
    assert engine is manager.current()
    assert engine.rules_count == 3
    assert manager.built_sources == (LIST_A_URL, LIST_B_URL)
    assert sorted(list_server.requests) == [LIST_A_URL, LIST_B_URL]


@pytest.mark.asyncio
async def test_identical_rebuild_does_no_work(list_server):
    storage = MemoryStorage()
    manager = _manager(list_server, storage)
    first = await manager.rebuild([LIST_A_URL])
    reads, writes = storage.reads, storage.writes

    second = await manager.rebuild([LIST_A_URL])

    assert second is first
    assert list_server.requests == [LIST_A_URL]
    assert manager.build_count == 1
    assert (storage.reads, storage.writes) == (reads, writes)


@pytest.mark.asyncio
async def test_cache_is_reused_across_managers(list_server):
    storage = MemoryStorage()
    await _manager(list_server, storage).rebuild([LIST_A_URL])

    second_server = ListServer({})
    engine = await _manager(second_server, storage).rebuild([LIST_A_URL])

    assert second_server.requests == []
    assert engine.rules_count == 2


@pytest.mark.asyncio
async def test_changed_url_at_same_index_is_refetched(list_server):
    storage = MemoryStorage()
    manager = _manager(list_server, storage)
    await manager.rebuild([LIST_A_URL])
    engine = await manager.rebuild([LIST_B_URL])
    assert list_server.requests == [LIST_A_URL, LIST_B_URL]
    assert engine.source_urls == (LIST_B_URL,)
    assert engine.rules_count == 1


@pytest.mark.asyncio
async def test_failed_fetch_degrades_to_empty_and_is_not_cached():
    server = ListServer({LIST_A_URL: LIST_A, LIST_B_URL: 500})
    storage = MemoryStorage()
    manager = _manager(server, storage)

    engine = await manager.rebuild([LIST_A_URL, LIST_B_URL])

    assert engine.rules_count == 2
    assert ListCache(storage).indices() == [0]


@pytest.mark.asyncio
async def test_refresh_refetches_everything():
    server = ListServer({LIST_A_URL: LIST_A, LIST_B_URL: 500})
    manager = _manager(server)
    await manager.rebuild([LIST_A_URL, LIST_B_URL])

    server.lists[LIST_B_URL] = LIST_B
    engine = await manager.rebuild([LIST_A_URL, LIST_B_URL], refresh=True)

    assert engine.rules_count == 3
    assert server.requests.count(LIST_A_URL) == 2
    assert server.requests.count(LIST_B_URL) == 2
    assert manager.build_count == 2


@pytest.mark.asyncio
async def test_empty_sources_build_empty_engine(list_server):
    manager = _manager(list_server)
    engine = await manager.rebuild([])
    assert engine is not None
    assert engine.rules_count == 0


@pytest.mark.asyncio
async def test_rules_count_is_published(list_server):
    bus = NotificationBus()
    received = []
    bus.subscribe(RULES_COUNT_UPDATE, received.append)
    manager = _manager(list_server, bus=bus)

    await manager.rebuild([LIST_A_URL])
    await manager.rebuild([LIST_A_URL])

    assert received == [{"rulesCount": 2}]


@pytest.mark.asyncio
async def test_rapid_rebuilds_are_coalesced():
    """Only the first and the latest target are built; the middle one never is."""
    gate = asyncio.Event()
    server = ListServer(
        {LIST_A_URL: LIST_A, LIST_B_URL: LIST_B, LIST_C_URL: LIST_C}, gate=gate
    )
    bus = NotificationBus()
    published = []
    bus.subscribe(RULES_COUNT_UPDATE, published.append)
    manager = _manager(server, bus=bus)

    first = asyncio.create_task(manager.rebuild([LIST_A_URL]))
    while not server.requests:
        await asyncio.sleep(0)
    assert manager.rebuilding is True

    second = asyncio.create_task(manager.rebuild([LIST_B_URL]))
    third = asyncio.create_task(manager.rebuild([LIST_C_URL]))
    await asyncio.sleep(0)
    gate.set()
    results = await asyncio.gather(first, second, third)

    assert all(r is manager.current() for r in results)
    assert manager.built_sources == (LIST_C_URL,)
    assert manager.build_count == 2
    assert manager.discarded_count == 1
    assert LIST_B_URL not in server.requests
    assert published == [{"rulesCount": 1}]
    assert manager.rebuilding is False


@pytest.mark.asyncio
async def test_duplicate_request_joins_in_flight_build():
    gate = asyncio.Event()
    server = ListServer({LIST_A_URL: LIST_A}, gate=gate)
    manager = _manager(server)

    first = asyncio.create_task(manager.rebuild([LIST_A_URL]))
    while not server.requests:
        await asyncio.sleep(0)
    second = asyncio.create_task(manager.rebuild([LIST_A_URL]))
    await asyncio.sleep(0)
    gate.set()
    a, b = await asyncio.gather(first, second)

    assert a is b
    assert manager.build_count == 1
    assert server.requests == [LIST_A_URL]


@pytest.mark.asyncio
async def test_superseded_build_still_writes_cache():
    gate = asyncio.Event()
    server = ListServer({LIST_A_URL: LIST_A, LIST_B_URL: LIST_B}, gate=gate)
    storage = MemoryStorage()
    manager = _manager(server, storage)

    first = asyncio.create_task(manager.rebuild([LIST_A_URL]))
    while not server.requests:
        await asyncio.sleep(0)
    second = asyncio.create_task(manager.rebuild([LIST_A_URL, LIST_B_URL]))
    await asyncio.sleep(0)
    gate.set()
    await asyncio.gather(first, second)

    # index 0 was written by the discarded build and reused by the next one
    assert server.requests.count(LIST_A_URL) == 1
    assert manager.current().rules_count == 3


@pytest.mark.asyncio
async def test_wait_idle_without_rebuild_returns(list_server):
    manager = _manager(list_server)
    await manager.wait_idle()
    assert manager.current() is None
