"""Per-tab request statistics."""
from tabshield.stats.tab_stats_store import TabStatsStore

__all__ = ["TabStatsStore"]
