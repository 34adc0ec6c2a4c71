"""DecisionPipeline: the verdict for every outbound request.

Decision precedence, first match wins:
  1. Protection switched off -> allow. This overrides everything below.
  2. Document hostname on the user's blocklist -> cancel.
  3. Engine installed -> ask it. A blocking rule cancels; an allow-list
     rule, or no rule at all, allows.
  4. No engine yet -> allow. Requests are never held back waiting for
     the first build.

``evaluate`` is a pure function of (request, config, engine) so the
decision logic can be tested without a tab, a bus or an event loop.
``DecisionPipeline.handle`` wraps it with the effects: snapshot the
current config and engine, record tab statistics, publish the update.

Requests without a document URL (a tab's own top-level navigation) are
not classified at all: no verdict, no statistics.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from tabshield.domain.config import Configuration
from tabshield.domain.decisions import DecisionReason, MatchVerdict
from tabshield.domain.tab_stats import TabStats
from tabshield.domain.types import BACKGROUND_TAB_ID, TabId, Url
from tabshield.engine.engine import Engine, Request, RequestType, hostname_of
from tabshield.messaging.bus import TAB_STATS_UPDATE, NotificationBus
from tabshield.stats.tab_stats_store import TabStatsStore

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RequestDetails:
    """One intercepted request as the host reports it."""
    request_url: Url
    document_url: Url | None
    tab_id: TabId = BACKGROUND_TAB_ID

    @classmethod
    def from_host(cls, details: Mapping[str, Any]) -> RequestDetails:
        """Build from the host's ``{url, documentUrl, tabId}`` mapping."""
        tab_id = details.get("tabId", BACKGROUND_TAB_ID)
        return cls(
            request_url=details["url"],
            document_url=details.get("documentUrl") or None,
            tab_id=tab_id if isinstance(tab_id, int) else BACKGROUND_TAB_ID,
        )


def evaluate(
    details: RequestDetails,
    config: Configuration,
    engine: Engine | None,
) -> MatchVerdict:
    """Decide one request. Pure: reads its arguments, touches nothing else."""
    if not config.protection_enabled:
        return MatchVerdict(cancel=False, reason=DecisionReason.PROTECTION_DISABLED)

    if config.is_domain_blocked(hostname_of(details.document_url)):
        return MatchVerdict(cancel=True, reason=DecisionReason.DOMAIN_BLOCKED)

    if engine is None:
        return MatchVerdict(cancel=False, reason=DecisionReason.NO_ENGINE)

    result = engine.match_request(
        Request(details.request_url, details.document_url, RequestType.DOCUMENT)
    )
    if result.blocked:
        return MatchVerdict(cancel=True, reason=DecisionReason.RULE_MATCHED)
    if result.matched:
        return MatchVerdict(cancel=False, reason=DecisionReason.ALLOWLISTED)
    return MatchVerdict(cancel=False, reason=DecisionReason.NO_MATCH)


class DecisionPipeline:
    """Applies ``evaluate`` to live state and records the outcome.

    Args:
        stats: per-tab statistics store (written only from here).
        config_source: returns the current Configuration snapshot.
        engine_source: returns the current Engine, or None.
        bus: where tab-stats updates are published (optional).
    """

    def __init__(
        self,
        stats: TabStatsStore,
        config_source: Callable[[], Configuration],
        engine_source: Callable[[], Engine | None],
        bus: NotificationBus | None = None,
    ) -> None:
        self._stats = stats
        self._config_source = config_source
        self._engine_source = engine_source
        self._bus = bus
        self._requests_evaluated = 0
        self._requests_cancelled = 0

    @property
    def requests_evaluated(self) -> int:
        return self._requests_evaluated

    @property
    def requests_cancelled(self) -> int:
        return self._requests_cancelled

    def handle(self, details: RequestDetails) -> MatchVerdict | None:
        """Verdict for one request, or None when it isn't classified."""
        if details.document_url is None:
            return None

        # Snapshots: a rebuild or config change mid-request can't mix states
        config = self._config_source()
        engine = self._engine_source()
        try:
            verdict = evaluate(details, config, engine)
        except Exception:
            log.exception("Evaluation failed for %s; allowing", details.request_url)
            verdict = MatchVerdict(cancel=False, reason=DecisionReason.EVALUATION_FAILED)

        self._requests_evaluated += 1
        if verdict.cancel:
            self._requests_cancelled += 1
            log.debug("Cancelling %s (%s)", details.request_url, verdict.reason.name)

        if details.tab_id != BACKGROUND_TAB_ID:
            self._record(details, verdict)
        return verdict

    def _record(self, details: RequestDetails, verdict: MatchVerdict) -> None:
        request_host = hostname_of(details.request_url)
        document_host = hostname_of(details.document_url)

        def _update(stats: TabStats) -> None:
            stats.request_count += 1
            if request_host:
                stats.requested_domains.add(request_host)
            if verdict.cancel:
                stats.blocked_count += 1
                if request_host:
                    stats.blocked_domains.add(request_host)
                if request_host and request_host != document_host:
                    stats.third_party_blocked_count += 1

        updated = self._stats.mutate(details.tab_id, _update)
        if self._bus is not None:
            self._bus.publish(
                TAB_STATS_UPDATE,
                {"tabId": details.tab_id, "stats": updated.to_dict()},
            )
