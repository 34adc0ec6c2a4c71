"""MessageRouter: request/response surface for observers such as a popup.

Recognised kinds:

    get-rules-count   -> {"rulesCount": int}, 0 before the first build
    get-tab-stats     -> stats of the active tab (empty record if none)
    reset-tab         payload: tab id (int) -> clears that tab's stats
    refresh-config    re-reads the configuration, then reloads the active tab
    refresh-engine    rebuilds the engine, downloading every list again

A malformed payload or an unknown kind raises MessageContractError to
the caller of handle(). Nothing else is affected.
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Protocol

from tabshield.config_watcher import ConfigWatcher
from tabshield.domain.tab_stats import TabStats
from tabshield.domain.types import TabId
from tabshield.engine.manager import EngineManager
from tabshield.errors import MessageContractError
from tabshield.messaging.bus import TAB_STATS_UPDATE, NotificationBus
from tabshield.stats.tab_stats_store import TabStatsStore

log = logging.getLogger(__name__)

GET_RULES_COUNT = "get-rules-count"
GET_TAB_STATS = "get-tab-stats"
RESET_TAB = "reset-tab"
REFRESH_CONFIG = "refresh-config"
REFRESH_ENGINE = "refresh-engine"


class TabController(Protocol):
    """Host hook for acting on tabs. ``reload`` may be sync or async."""

    def reload(self, tab_id: TabId) -> Awaitable[None] | None: ...


class MessageRouter:
    """Dispatches one message kind to its handler.

    Args:
        engine_manager: answers rule counts, performs refreshes.
        stats: per-tab statistics.
        watcher: configuration owner.
        active_tab: returns the id of the focused tab, or None.
        bus: where reset-tab announces the cleared stats (optional).
        tab_controller: reloads tabs after refresh-config (optional).
    """

    def __init__(
        self,
        engine_manager: EngineManager,
        stats: TabStatsStore,
        watcher: ConfigWatcher,
        active_tab: Callable[[], TabId | None],
        bus: NotificationBus | None = None,
        tab_controller: TabController | None = None,
    ) -> None:
        self._engine_manager = engine_manager
        self._stats = stats
        self._watcher = watcher
        self._active_tab = active_tab
        self._bus = bus
        self._tab_controller = tab_controller
        self._handlers: dict[str, Callable[[Any], Awaitable[dict[str, Any] | None]]] = {
            GET_RULES_COUNT: self._get_rules_count,
            GET_TAB_STATS: self._get_tab_stats,
            RESET_TAB: self._reset_tab,
            REFRESH_CONFIG: self._refresh_config,
            REFRESH_ENGINE: self._refresh_engine,
        }

    @property
    def kinds(self) -> list[str]:
        return sorted(self._handlers)

    async def handle(self, kind: str, payload: Any = None) -> dict[str, Any] | None:
        handler = self._handlers.get(kind)
        if handler is None:
            raise MessageContractError(f"Unknown message kind: {kind!r}")
        return await handler(payload)

    async def _get_rules_count(self, payload: Any) -> dict[str, Any]:
        return {"rulesCount": self._engine_manager.rules_count}

    async def _get_tab_stats(self, payload: Any) -> dict[str, Any]:
        tab_id = self._active_tab()
        if tab_id is None:
            return TabStats.empty().to_dict()
        return self._stats.get(tab_id).to_dict()

    async def _reset_tab(self, payload: Any) -> None:
        # bool is an int subclass; True is not a tab id
        if not isinstance(payload, int) or isinstance(payload, bool):
            raise MessageContractError(f"reset-tab expects an integer tab id, got {payload!r}")
        self._stats.reset(payload)
        if self._bus is not None:
            self._bus.publish(
                TAB_STATS_UPDATE,
                {"tabId": payload, "stats": self._stats.get(payload).to_dict()},
            )
        return None

    async def _refresh_config(self, payload: Any) -> None:
        self._watcher.poll()
        tab_id = self._active_tab()
        if tab_id is not None and self._tab_controller is not None:
            result = self._tab_controller.reload(tab_id)
            if inspect.isawaitable(result):
                await result
        return None

    async def _refresh_engine(self, payload: Any) -> dict[str, Any]:
        sources = self._watcher.current.list_sources
        log.info("Refreshing engine from %d list(s)", len(sources))
        await self._engine_manager.rebuild(sources, refresh=True)
        return {"rulesCount": self._engine_manager.rules_count}
