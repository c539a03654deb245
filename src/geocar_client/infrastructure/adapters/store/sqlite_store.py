from __future__ import annotations

import os
import sqlite3
from pathlib import Path

from geocar_client.application.ports.key_value_store_port import KeyValueStorePort

SCHEMA = """
CREATE TABLE IF NOT EXISTS secure_store (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);
"""


class SQLiteKeyValueStore(KeyValueStorePort):
    """SQLite-backed key/value store. Persists tokens across restarts.

    File path configurable; creates schema on first use and restricts the
    file to the current user where the platform allows it. Every statement
    commits on its own, so each key is written atomically.
    """

    def __init__(self, db_path: str = ".geocar_tokens.sqlite") -> None:
        self._path = Path(db_path)
        self._conn = sqlite3.connect(self._path)
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.executescript(SCHEMA)
        self._conn.commit()
        try:
            os.chmod(self._path, 0o600)
        except OSError:
            pass

    def get(self, key: str) -> str | None:
        row = self._conn.execute("SELECT value FROM secure_store WHERE key=?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT INTO secure_store (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            (key, value),
        )
        self._conn.commit()

    def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM secure_store WHERE key=?", (key,))
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()
