"""ListCache: compiled filter lists kept in persistent storage.

One entry per list position, under the key ``processedFilter_<index>``.
Entries survive restarts and are never evicted; an entry is only
overwritten when the engine manager recompiles that index.

Each entry also records the URL it was compiled from. ``get`` takes the
URL currently configured at that index and reports a miss when they
differ, so editing a list URL in place can't serve the old list's rules.
"""
from __future__ import annotations

import logging

from tabshield.domain.types import SourceIndex, Url
from tabshield.engine.compiled import CompiledList
from tabshield.store.base import KeyValueStorage

log = logging.getLogger(__name__)

KEY_PREFIX = "processedFilter_"


def cache_key(source_index: SourceIndex) -> str:
    return f"{KEY_PREFIX}{source_index}"


class ListCache:
    """Per-index cache of CompiledList entries.

    Args:
        storage: backing key-value storage (shared with the config watcher).
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self.hits = 0
        self.misses = 0

    def get(self, source_index: SourceIndex, source_url: Url | None = None) -> CompiledList | None:
        """Return the cached list for ``source_index``, or None.

        When ``source_url`` is given, an entry compiled from a different
        URL counts as a miss. Undecodable entries also count as misses.
        """
        raw = self._storage.get(cache_key(source_index))
        if raw is None:
            self.misses += 1
            return None
        try:
            compiled = CompiledList.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            log.warning("Ignoring corrupt cache entry %s: %s", cache_key(source_index), exc)
            self.misses += 1
            return None
        if source_url is not None and compiled.source_url != source_url:
            log.debug(
                "Cache entry %s was compiled from %s, now %s",
                cache_key(source_index), compiled.source_url, source_url,
            )
            self.misses += 1
            return None
        self.hits += 1
        return compiled

    def put(self, source_index: SourceIndex, compiled: CompiledList) -> None:
        """Store (or overwrite) the compiled list for ``source_index``."""
        self._storage.set(cache_key(source_index), compiled.to_dict())

    def indices(self) -> list[SourceIndex]:
        """Indices that currently have an entry."""
        return sorted(
            int(k[len(KEY_PREFIX):])
            for k in self._storage.keys()
            if k.startswith(KEY_PREFIX) and k[len(KEY_PREFIX):].isdigit()
        )
