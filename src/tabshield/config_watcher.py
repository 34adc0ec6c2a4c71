"""ConfigWatcher: single owner of the user's Configuration.

The settings page writes the configuration into storage under the key
``config``. The watcher:

  - load(): reads it once at startup, writing the defaults if the key is
    missing or empty
  - poll(): re-reads storage and applies any change; start() runs this
    every ``interval`` seconds in a background task
  - apply(): takes a pushed configuration (dict or Configuration),
    persists it and applies it

Every path goes through Configuration's cleaning factory, and every real
change is announced to subscribers as ``callback(old, new)``. Readers
only ever see a frozen snapshot via ``current``.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Callable, Mapping

from tabshield.domain.config import Configuration
from tabshield.errors import StorageError
from tabshield.store.base import KeyValueStorage

log = logging.getLogger(__name__)

CONFIG_KEY = "config"

ChangeCallback = Callable[[Configuration, Configuration], None]


class ConfigWatcher:
    """Loads, polls and publishes the user configuration.

    Args:
        storage: where the settings page keeps the configuration.
        default: configuration written on first run.
    """

    def __init__(self, storage: KeyValueStorage, default: Configuration | None = None) -> None:
        self._storage = storage
        self._default = default or Configuration.default()
        self._current = self._default
        self._subscribers: list[ChangeCallback] = []
        self._poll_task: asyncio.Task | None = None

    @property
    def current(self) -> Configuration:
        return self._current

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register a change callback. Returns an unsubscribe callable."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def load(self) -> Configuration:
        """Read the stored configuration, seeding defaults if there is none."""
        self._read()
        return self._current

    def poll(self) -> bool:
        """Re-read storage. Returns True if the configuration changed.

        A missing or empty stored configuration is re-seeded with defaults,
        as on load().
        """
        return self._read()

    def apply(self, update: Configuration | Mapping[str, Any]) -> Configuration:
        """Persist and apply a pushed configuration; returns the cleaned copy."""
        config = update if isinstance(update, Configuration) else Configuration.from_dict(update)
        # Re-clean: a hand-built Configuration may bypass the factory
        config = config.with_changes()
        self._storage.set(CONFIG_KEY, config.to_dict())
        self._replace(config)
        return config

    def start(self, interval: float = 1.0) -> None:
        """Poll storage every ``interval`` seconds until stop()."""
        if self._poll_task is None:
            self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop(interval))

    async def stop(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _poll_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                self.poll()
            except StorageError:
                log.exception("Configuration poll failed")

    def _read(self) -> bool:
        raw = self._storage.get(CONFIG_KEY)
        if isinstance(raw, Mapping) and raw:
            return self._replace(Configuration.from_dict(raw))
        log.info("No stored configuration; writing defaults")
        self._storage.set(CONFIG_KEY, self._default.to_dict())
        return self._replace(self._default)

    def _replace(self, config: Configuration) -> bool:
        if config == self._current:
            return False
        old, self._current = self._current, config
        log.info(
            "Configuration changed: protection=%s, %d list(s), %d blocked domain(s)",
            config.protection_enabled, len(config.list_sources), len(config.blocked_domains),
        )
        for callback in list(self._subscribers):
            try:
                callback(old, config)
            except Exception:
                log.exception("Configuration subscriber failed")
        return True
