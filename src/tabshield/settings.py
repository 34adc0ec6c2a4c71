"""Runtime settings: where state lives and how the background loop behaves.

These are process settings, not user preferences (those live in
Configuration and are owned by ConfigWatcher). Values come from the
environment; CLI flags override them.

    TABSHIELD_DB_PATH         sqlite file for config + compiled lists
                              (empty = in-memory, nothing persisted)
    TABSHIELD_POLL_INTERVAL   seconds between configuration polls (1.0)
    TABSHIELD_FETCH_TIMEOUT   per-list download timeout in seconds
                              (empty = no timeout)
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

log = logging.getLogger(__name__)


def _env_float(name: str, default: float | None) -> float | None:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        log.warning("Ignoring non-numeric %s=%r", name, raw)
        return default
    if value <= 0:
        log.warning("Ignoring non-positive %s=%r", name, raw)
        return default
    return value


@dataclass(frozen=True, slots=True)
class RuntimeSettings:
    db_path: str | None = None
    poll_interval: float = 1.0
    fetch_timeout: float | None = None

    @classmethod
    def from_env(cls) -> RuntimeSettings:
        db_path = (os.environ.get("TABSHIELD_DB_PATH") or "").strip() or None
        return cls(
            db_path=db_path,
            poll_interval=_env_float("TABSHIELD_POLL_INTERVAL", 1.0) or 1.0,
            fetch_timeout=_env_float("TABSHIELD_FETCH_TIMEOUT", None),
        )
