"""Key-value storage backends and the compiled-list cache built on them."""
from tabshield.store.base import KeyValueStorage
from tabshield.store.list_cache import ListCache, cache_key
from tabshield.store.memory_storage import MemoryStorage
from tabshield.store.sqlite_storage import SqliteStorage

__all__ = [
    "KeyValueStorage",
    "ListCache",
    "cache_key",
    "MemoryStorage",
    "SqliteStorage",
]
