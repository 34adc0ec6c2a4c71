"""TabStatsStore: explicit keyed store of TabStats, one record per tab.

All mutation goes through four operations:
  - reset(tab_id): replace with an empty record (navigation started)
  - remove(tab_id): drop the record (tab closed)
  - mutate(tab_id, fn): apply an update, creating the record if absent
  - get(tab_id): read a copy; never creates a record

Only the decision pipeline calls mutate(). Everything runs on the one
event loop, so there is no locking.
"""
from __future__ import annotations

from typing import Callable, Iterator

from tabshield.domain.tab_stats import TabStats
from tabshield.domain.types import TabId


class TabStatsStore:

    def __init__(self) -> None:
        self._stats: dict[TabId, TabStats] = {}

    def reset(self, tab_id: TabId) -> None:
        self._stats[tab_id] = TabStats.empty()

    def remove(self, tab_id: TabId) -> bool:
        """Drop a tab's record. Returns True if it existed."""
        return self._stats.pop(tab_id, None) is not None

    def get(self, tab_id: TabId) -> TabStats:
        """Copy of the tab's stats, or an empty record if there are none."""
        stats = self._stats.get(tab_id)
        return stats.copy() if stats is not None else TabStats.empty()

    def mutate(self, tab_id: TabId, fn: Callable[[TabStats], None]) -> TabStats:
        """Apply ``fn`` to the tab's live record and return a copy of the result."""
        stats = self._stats.get(tab_id)
        if stats is None:
            stats = self._stats[tab_id] = TabStats.empty()
        fn(stats)
        return stats.copy()

    def tab_ids(self) -> list[TabId]:
        return sorted(self._stats)

    def __contains__(self, tab_id: object) -> bool:
        return tab_id in self._stats

    def __len__(self) -> int:
        return len(self._stats)

    def __iter__(self) -> Iterator[TabId]:
        return iter(self.tab_ids())
