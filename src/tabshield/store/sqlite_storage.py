"""SQLite-backed storage: one table, JSON text values.

Survives process restarts, which is what lets compiled filter lists be
reused across runs without refetching. The connection is opened per call
in WAL mode, so several processes can share the same file.
"""
from __future__ import annotations

import json
import logging
import os
import sqlite3
from typing import Any

from tabshield.errors import StorageError
from tabshield.store.base import KeyValueStorage

log = logging.getLogger(__name__)


class SqliteStorage(KeyValueStorage):
    """Key-value storage in a single sqlite table.

    Args:
        db_path: database file. Parent directories are created on init.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        parent = os.path.dirname(db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    k TEXT PRIMARY KEY,
                    v TEXT NOT NULL
                );
                """
            )

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self.db_path, timeout=30)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open {self.db_path}: {exc}") from exc
        return conn

    def get(self, key: str) -> Any | None:
        conn = self._connect()
        try:
            row = conn.execute("SELECT v FROM kv_store WHERE k=?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StorageError(f"Read of {key!r} failed: {exc}") from exc
        finally:
            conn.close()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except ValueError:
            log.warning("Discarding undecodable value for key %s", key)
            return None

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, separators=(",", ":"))
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    "INSERT INTO kv_store(k, v) VALUES(?, ?) "
                    "ON CONFLICT(k) DO UPDATE SET v=excluded.v",
                    (key, payload),
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Write of {key!r} failed: {exc}") from exc
        finally:
            conn.close()

    def delete(self, key: str) -> bool:
        conn = self._connect()
        try:
            with conn:
                cur = conn.execute("DELETE FROM kv_store WHERE k=?", (key,))
            return cur.rowcount > 0
        except sqlite3.Error as exc:
            raise StorageError(f"Delete of {key!r} failed: {exc}") from exc
        finally:
            conn.close()

    def keys(self) -> list[str]:
        conn = self._connect()
        try:
            rows = conn.execute("SELECT k FROM kv_store ORDER BY k").fetchall()
        except sqlite3.Error as exc:
            raise StorageError(f"Key listing failed: {exc}") from exc
        finally:
            conn.close()
        return [r[0] for r in rows]
