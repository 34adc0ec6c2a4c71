"""Abstract base for key-value storage backends.

MemoryStorage and SqliteStorage both implement this interface. Values are
JSON-compatible objects (dicts, lists, strings, numbers); each backend is
responsible for its own encoding. The config watcher and the list cache
share one storage instance, each under its own keys.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class KeyValueStorage(ABC):
    """Interface that both memory and sqlite storages implement."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the stored value, or None if the key is absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a value, overwriting any previous one."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it existed."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        """All stored keys, sorted."""
        ...

    def close(self) -> None:
        """Release backend resources. No-op by default."""
