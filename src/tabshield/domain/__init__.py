"""Domain model for tabshield.

Re-exports all public types for convenient access:
    from tabshield.domain import Configuration, TabStats, MatchVerdict
"""
from tabshield.domain.config import DEFAULT_LIST_SOURCES, Configuration
from tabshield.domain.decisions import DecisionReason, MatchVerdict
from tabshield.domain.tab_stats import TabStats
from tabshield.domain.types import (
    BACKGROUND_TAB_ID,
    DomainName,
    SourceIndex,
    TabId,
    Url,
)

__all__ = [
    "DEFAULT_LIST_SOURCES",
    "Configuration",
    "DecisionReason",
    "MatchVerdict",
    "TabStats",
    "BACKGROUND_TAB_ID",
    "DomainName",
    "SourceIndex",
    "TabId",
    "Url",
]
