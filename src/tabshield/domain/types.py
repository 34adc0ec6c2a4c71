"""Shared type aliases and constants used across the domain."""
from __future__ import annotations

from typing import TypeAlias

TabId: TypeAlias = int
SourceIndex: TypeAlias = int  # position of a list URL in Configuration.list_sources
DomainName: TypeAlias = str
Url: TypeAlias = str

# Requests that do not belong to any tab (service workers, extension pages)
BACKGROUND_TAB_ID: TabId = -1
