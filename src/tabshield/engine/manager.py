"""EngineManager: owns the current Engine and rebuilds it on demand.

Rebuild flow for a list-sources snapshot:
  1. Identity guard: same sources as the installed engine -> return it,
     touching neither the network nor the cache.
  2. Resolve every index concurrently: ListCache hit, or fetch +
     preprocess + ListCache.put on a miss.
  3. Build the Engine off the event loop and swap it in as one
     reference assignment, then publish the new rule count.

A list that fails to download resolves to an empty CompiledList. That
degraded result is not cached, so the next rebuild tries the network
again.

Single-flight: at most one rebuild runs at a time. A call arriving while
one is running overwrites the single pending slot (latest sources win)
and awaits the same drain task. When a build finishes and the slot has
been refilled meanwhile, the finished engine is discarded and the newer
target is built. Cache writes made by the discarded build are kept.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from tabshield.domain.types import SourceIndex, Url
from tabshield.engine.compiled import CompiledList, preprocess
from tabshield.engine.engine import Engine
from tabshield.engine.fetcher import ListFetcher
from tabshield.errors import ListFetchError, StorageError
from tabshield.messaging.bus import RULES_COUNT_UPDATE, NotificationBus
from tabshield.store.list_cache import ListCache

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Target:
    sources: tuple[Url, ...]
    refresh: bool = False


class EngineManager:
    """Single-writer owner of the current Engine.

    Args:
        cache: compiled-list cache.
        fetcher: filter-list downloader.
        bus: where rule-count updates are published (optional).
        build_in_thread: build the Engine in a worker thread so a large
            list doesn't stall request decisions on the event loop.
    """

    def __init__(
        self,
        cache: ListCache,
        fetcher: ListFetcher,
        bus: NotificationBus | None = None,
        build_in_thread: bool = True,
    ) -> None:
        self._cache = cache
        self._fetcher = fetcher
        self._bus = bus
        self._build_in_thread = build_in_thread
        self._engine: Engine | None = None
        self._built_sources: tuple[Url, ...] | None = None
        self._pending: _Target | None = None
        self._building: _Target | None = None
        self._drain_task: asyncio.Task | None = None
        self.build_count = 0
        self.discarded_count = 0

    def current(self) -> Engine | None:
        """The installed engine, or None before the first rebuild completes."""
        return self._engine

    @property
    def rules_count(self) -> int:
        return self._engine.rules_count if self._engine is not None else 0

    @property
    def built_sources(self) -> tuple[Url, ...] | None:
        return self._built_sources

    @property
    def rebuilding(self) -> bool:
        return self._drain_task is not None

    async def rebuild(self, list_sources: Sequence[Url], refresh: bool = False) -> Engine | None:
        """Bring the engine in line with ``list_sources``.

        ``refresh=True`` skips both the identity guard and cache reads, so
        every list is downloaded again and its cache entry overwritten.
        """
        sources = tuple(list_sources)
        if (
            not refresh
            and self._drain_task is None
            and self._is_installed(sources)
        ):
            log.debug("Engine already built for %d list(s); skipping rebuild", len(sources))
            return self._engine

        building = self._building
        if building is not None and not refresh and building.sources == sources:
            # The in-flight build already targets these sources
            self._pending = None
        else:
            if self._pending is not None and self._pending.sources == sources:
                refresh = refresh or self._pending.refresh
            self._pending = _Target(sources, refresh)

        if self._drain_task is None:
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())
        else:
            log.debug("Rebuild in flight; coalescing request for %d list(s)", len(sources))
        # shield: a cancelled caller must not cancel the shared drain
        return await asyncio.shield(self._drain_task)

    async def wait_idle(self) -> None:
        """Wait for any in-flight rebuild to finish."""
        task = self._drain_task
        if task is not None:
            await asyncio.shield(task)

    def _is_installed(self, sources: tuple[Url, ...]) -> bool:
        return self._engine is not None and sources == self._built_sources

    async def _drain(self) -> Engine | None:
        try:
            while self._pending is not None:
                target, self._pending = self._pending, None
                if not target.refresh and self._is_installed(target.sources):
                    continue
                self._building = target
                try:
                    engine = await self._build(target)
                finally:
                    self._building = None
                if self._pending is not None:
                    self.discarded_count += 1
                    log.info(
                        "Discarding engine for %d list(s); configuration changed during build",
                        len(target.sources),
                    )
                    continue
                self._install(engine, target.sources)
            return self._engine
        finally:
            self._drain_task = None

    async def _build(self, target: _Target) -> Engine:
        compiled = await asyncio.gather(
            *(
                self._resolve(index, url, target.refresh)
                for index, url in enumerate(target.sources)
            )
        )
        if self._build_in_thread:
            engine = await asyncio.to_thread(Engine.build, compiled)
        else:
            engine = Engine.build(compiled)
        self.build_count += 1
        return engine

    async def _resolve(self, index: SourceIndex, url: Url, refresh: bool) -> CompiledList:
        if not refresh:
            cached = self._cache_get(index, url)
            if cached is not None:
                return cached
        try:
            raw_text = await self._fetcher.fetch(url)
        except ListFetchError as exc:
            log.warning("%s; using an empty ruleset for list %d", exc, index)
            return CompiledList.empty(index, url)
        compiled = preprocess(index, url, raw_text)
        log.debug("Compiled list %d (%s): %d rule(s)", index, url, compiled.rule_count)
        try:
            self._cache.put(index, compiled)
        except StorageError:
            log.exception("Could not cache compiled list %d", index)
        return compiled

    def _cache_get(self, index: SourceIndex, url: Url) -> CompiledList | None:
        try:
            return self._cache.get(index, url)
        except StorageError:
            log.exception("Cache read for list %d failed; refetching", index)
            return None

    def _install(self, engine: Engine, sources: tuple[Url, ...]) -> None:
        self._engine = engine
        self._built_sources = sources
        if self._bus is not None:
            self._bus.publish(RULES_COUNT_UPDATE, {"rulesCount": engine.rules_count})
