"""NotificationBus: push channel from the core to its observers.

Observers (a popup, a badge renderer, a test) subscribe to a message kind
and receive every payload published under it. Publishing is synchronous
and runs on the caller's event-loop turn; a failing observer is logged and
skipped so it can't break the request path that published.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

log = logging.getLogger(__name__)

RULES_COUNT_UPDATE = "rules-count-update"
TAB_STATS_UPDATE = "tab-stats-update"

Handler = Callable[[dict[str, Any]], None]


class NotificationBus:
    """Kind-keyed observer registry."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self.published = 0

    def subscribe(self, kind: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``kind``. Returns an unsubscribe callable."""
        self._handlers[kind].append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(kind, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def publish(self, kind: str, payload: dict[str, Any]) -> int:
        """Deliver ``payload`` to every handler of ``kind``.

        Returns the number of handlers that ran without raising.
        """
        self.published += 1
        delivered = 0
        # Snapshot: a handler may unsubscribe itself while being called
        for handler in list(self._handlers.get(kind, ())):
            try:
                handler(payload)
                delivered += 1
            except Exception:
                log.exception("Observer for %s failed", kind)
        return delivered

    def subscriber_count(self, kind: str) -> int:
        return len(self._handlers.get(kind, ()))
