"""
Local fallback storage for RepoDB.

When the remote repository is unconfigured or unreachable, collections are
read from and written to an on-device key-value store instead:
- SqliteKeyValueStore: one SQLite file (default)
- InMemoryKeyValueStore: process memory (tests)

Invariants:
    - No versioning and no conflict detection: last writer wins
    - Nothing here ever reconciles with the remote repository

Table schema:
    kv:
        - key TEXT PRIMARY KEY
        - value TEXT
        - updated_at INTEGER (Unix ms)
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """String key-value persistence."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Dictionary-backed KeyValueStore."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return sorted(self._data)


class SqliteKeyValueStore:
    """SQLite-backed KeyValueStore.

    Thread safety:
        Each operation opens its own connection.

    Example:
        >>> kv = SqliteKeyValueStore("~/.repodb/local.db")
        >>> kv.set("pricepilot_db_data/Store.json", "[]")
    """

    def __init__(self, path: str | Path, busy_timeout_ms: int = 5000) -> None:
        self.path = Path(path).expanduser()
        self.busy_timeout_ms = busy_timeout_ms

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.path), timeout=self.busy_timeout_ms / 1000.0)
        try:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS kv ("
                " key TEXT PRIMARY KEY,"
                " value TEXT NOT NULL,"
                " updated_at INTEGER NOT NULL)"
            )
            yield conn
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self._get_connection() as conn:
            conn.execute(
                "INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)"
                " ON CONFLICT(key) DO UPDATE SET"
                " value = excluded.value, updated_at = excluded.updated_at",
                (key, value, int(time.time() * 1000)),
            )

    def keys(self) -> list[str]:
        with self._get_connection() as conn:
            return [row[0] for row in conn.execute("SELECT key FROM kv ORDER BY key")]


class LocalFallbackStore:
    """Named collection blobs kept in a KeyValueStore.

    Keys are ``{prefix}{name}.json``, matching the remote blob naming.
    """

    def __init__(self, kv: KeyValueStore, prefix: str = "pricepilot_db_data/") -> None:
        self.kv = kv
        self.prefix = prefix

    def key_for(self, name: str) -> str:
        return f"{self.prefix}{name}.json"

    def read(self, name: str) -> Optional[str]:
        return self.kv.get(self.key_for(name))

    def write(self, name: str, content: str) -> None:
        self.kv.set(self.key_for(name), content)
