"""BackgroundContext: the process-scoped wiring of every component.

One context per process. It owns each piece of state exactly once:

    storage ──┬── ConfigWatcher ── current Configuration
              └── ListCache ────── EngineManager ── current Engine
    TabStatsStore, NotificationBus, DecisionPipeline, MessageRouter

and exposes the host hooks as plain methods:

    on_before_request(details)  -> {"cancel": bool} or None
    on_tab_updated(tab_id, status)
    on_tab_activated(tab_id)
    on_tab_removed(tab_id)
    on_message(kind, payload)   (async)

Lifecycle: start() loads the configuration, subscribes to its changes
and kicks off the first engine build without waiting for it (requests
pass through until it lands), then starts config polling. stop()
tears it all down in reverse.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

from tabshield.config_watcher import ConfigWatcher
from tabshield.domain.config import Configuration
from tabshield.domain.types import TabId, Url
from tabshield.engine.fetcher import ListFetcher
from tabshield.engine.manager import EngineManager
from tabshield.interceptor.pipeline import DecisionPipeline, RequestDetails
from tabshield.messaging.bus import TAB_STATS_UPDATE, NotificationBus
from tabshield.messaging.router import MessageRouter, TabController
from tabshield.settings import RuntimeSettings
from tabshield.stats.tab_stats_store import TabStatsStore
from tabshield.store.base import KeyValueStorage
from tabshield.store.list_cache import ListCache
from tabshield.store.memory_storage import MemoryStorage
from tabshield.store.sqlite_storage import SqliteStorage

log = logging.getLogger(__name__)

NAVIGATION_LOADING = "loading"


class BackgroundContext:
    """Owns and wires all tabshield state for one process.

    Args:
        settings: runtime settings (defaults: in-memory, 1 s polling).
        storage: overrides the storage chosen from settings.
        fetcher: overrides the default httpx-backed fetcher.
        tab_controller: host hook used to reload tabs.
        build_in_thread: passed to EngineManager.
    """

    def __init__(
        self,
        settings: RuntimeSettings | None = None,
        storage: KeyValueStorage | None = None,
        fetcher: ListFetcher | None = None,
        tab_controller: TabController | None = None,
        build_in_thread: bool = True,
    ) -> None:
        self.settings = settings or RuntimeSettings()
        if storage is None:
            storage = (
                SqliteStorage(self.settings.db_path)
                if self.settings.db_path
                else MemoryStorage()
            )
        self.storage = storage
        self.bus = NotificationBus()
        self.stats = TabStatsStore()
        self.watcher = ConfigWatcher(storage)
        self.cache = ListCache(storage)
        self.fetcher = fetcher or ListFetcher(timeout=self.settings.fetch_timeout)
        self.engine_manager = EngineManager(
            self.cache, self.fetcher, self.bus, build_in_thread=build_in_thread
        )
        self.pipeline = DecisionPipeline(
            self.stats,
            config_source=lambda: self.watcher.current,
            engine_source=self.engine_manager.current,
            bus=self.bus,
        )
        self.router = MessageRouter(
            self.engine_manager,
            self.stats,
            self.watcher,
            active_tab=lambda: self._active_tab_id,
            bus=self.bus,
            tab_controller=tab_controller,
        )
        self._active_tab_id: TabId | None = None
        self._rebuild_tasks: set[asyncio.Task] = set()
        self._unsubscribe_config = None
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    @property
    def active_tab_id(self) -> TabId | None:
        return self._active_tab_id

    async def start(self, poll: bool = True) -> None:
        if self._started:
            return
        config = self.watcher.load()
        self._unsubscribe_config = self.watcher.subscribe(self._on_config_changed)
        self._schedule_rebuild(config.list_sources)
        if poll:
            self.watcher.start(self.settings.poll_interval)
        self._started = True
        log.info("Background context started with %d list(s)", len(config.list_sources))

    async def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        if self._unsubscribe_config is not None:
            self._unsubscribe_config()
            self._unsubscribe_config = None
        await self.watcher.stop()
        await self.wait_ready()
        await self.fetcher.aclose()
        self.storage.close()
        log.info("Background context stopped")

    async def wait_ready(self) -> None:
        """Wait until every scheduled rebuild has finished."""
        while self._rebuild_tasks:
            await asyncio.gather(*list(self._rebuild_tasks), return_exceptions=True)
        await self.engine_manager.wait_idle()

    async def __aenter__(self) -> BackgroundContext:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    # -- host hooks ---------------------------------------------------

    def on_before_request(
        self, details: RequestDetails | Mapping[str, Any]
    ) -> dict[str, bool] | None:
        if not isinstance(details, RequestDetails):
            details = RequestDetails.from_host(details)
        verdict = self.pipeline.handle(details)
        return verdict.to_response() if verdict is not None else None

    def on_tab_updated(self, tab_id: TabId, status: str | None) -> None:
        if status != NAVIGATION_LOADING:
            return
        self.stats.reset(tab_id)
        self.bus.publish(
            TAB_STATS_UPDATE,
            {"tabId": tab_id, "stats": self.stats.get(tab_id).to_dict()},
        )

    def on_tab_activated(self, tab_id: TabId) -> None:
        self._active_tab_id = tab_id

    def on_tab_removed(self, tab_id: TabId) -> None:
        self.stats.remove(tab_id)
        if self._active_tab_id == tab_id:
            self._active_tab_id = None

    async def on_message(self, kind: str, payload: Any = None) -> dict[str, Any] | None:
        return await self.router.handle(kind, payload)

    # -- internals ----------------------------------------------------

    def _on_config_changed(self, old: Configuration, new: Configuration) -> None:
        # Compare with the previous config, not the installed engine: a revert
        # during a build has to supersede the in-flight target
        if new.list_sources != old.list_sources:
            self._schedule_rebuild(new.list_sources)

    def _schedule_rebuild(self, sources: tuple[Url, ...]) -> None:
        task = asyncio.get_running_loop().create_task(self._rebuild(sources))
        self._rebuild_tasks.add(task)
        task.add_done_callback(self._rebuild_tasks.discard)

    async def _rebuild(self, sources: tuple[Url, ...]) -> None:
        try:
            await self.engine_manager.rebuild(sources)
        except Exception:
            log.exception("Engine rebuild failed")
