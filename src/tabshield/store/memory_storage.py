"""In-process storage. Nothing survives a restart; used by tests and the CLI."""
from __future__ import annotations

import copy
from typing import Any

from tabshield.store.base import KeyValueStorage


class MemoryStorage(KeyValueStorage):
    """Dict-backed storage.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store, same as a real serialising backend.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.reads = 0
        self.writes = 0

    def get(self, key: str) -> Any | None:
        self.reads += 1
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        self.writes += 1
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._data)
