"""TabStats: request/block counters for one tab.

One record per tab, owned by TabStatsStore. Records are created empty on
the tab's first navigation or first request, reset on every top-level
navigation, and dropped when the tab closes. Nothing here outlives the tab.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tabshield.domain.types import DomainName


@dataclass(slots=True)
class TabStats:
    request_count: int = 0
    blocked_count: int = 0
    third_party_blocked_count: int = 0
    blocked_domains: set[DomainName] = field(default_factory=set)
    requested_domains: set[DomainName] = field(default_factory=set)

    @classmethod
    def empty(cls) -> TabStats:
        return cls()

    def is_empty(self) -> bool:
        return (
            self.request_count == 0
            and self.blocked_count == 0
            and self.third_party_blocked_count == 0
            and not self.blocked_domains
            and not self.requested_domains
        )

    def copy(self) -> TabStats:
        """Detached copy; callers can't mutate the stored record through it."""
        return TabStats(
            request_count=self.request_count,
            blocked_count=self.blocked_count,
            third_party_blocked_count=self.third_party_blocked_count,
            blocked_domains=set(self.blocked_domains),
            requested_domains=set(self.requested_domains),
        )

    def to_dict(self) -> dict[str, Any]:
        """Message form: camelCase keys, sets as sorted lists."""
        return {
            "requestCount": self.request_count,
            "blockedCount": self.blocked_count,
            "thirdPartyBlockedCount": self.third_party_blocked_count,
            "blockedDomains": sorted(self.blocked_domains),
            "requestedDomains": sorted(self.requested_domains),
        }
