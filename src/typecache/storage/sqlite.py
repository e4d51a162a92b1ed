"""SQLite storage backend for entries that outlive the process."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path


class SQLiteStorage:
    """String-only persistent storage in a single SQLite table.

    A connection is opened per call, so the file can be shared with other
    processes and other caches using different key prefixes.
    """

    requires_serialization = True

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.path))

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS items (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                    """
                )
        finally:
            conn.close()

    def get_item(self, key: str) -> str | None:
        """Get the stored document for a key, or None if absent."""
        with self._lock:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT value FROM items WHERE key = ?", (key,)
                ).fetchone()
            finally:
                conn.close()
        return None if row is None else row[0]

    def set_item(self, key: str, value: str) -> None:
        """Store a document, replacing any existing one."""
        if not isinstance(value, str):
            raise TypeError(
                f"SQLiteStorage only stores strings, got {type(value).__name__}"
            )
        with self._lock:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        "INSERT OR REPLACE INTO items (key, value) VALUES (?, ?)",
                        (key, value),
                    )
            finally:
                conn.close()

    def remove_item(self, key: str) -> None:
        """Remove a document. No-op if absent."""
        with self._lock:
            conn = self._connect()
            try:
                with conn:
                    conn.execute("DELETE FROM items WHERE key = ?", (key,))
            finally:
                conn.close()

    def key(self, index: int) -> str | None:
        """Get the key at a position in key order."""
        if index < 0:
            return None
        with self._lock:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT key FROM items ORDER BY key LIMIT 1 OFFSET ?", (index,)
                ).fetchone()
            finally:
                conn.close()
        return None if row is None else row[0]

    def list_keys(self) -> list[str]:
        """Snapshot of every key in key order."""
        with self._lock:
            conn = self._connect()
            try:
                rows = conn.execute("SELECT key FROM items ORDER BY key").fetchall()
            finally:
                conn.close()
        return [row[0] for row in rows]

    def __len__(self) -> int:
        with self._lock:
            conn = self._connect()
            try:
                (count,) = conn.execute("SELECT COUNT(*) FROM items").fetchone()
            finally:
                conn.close()
        return int(count)

    def clear(self) -> None:
        """Remove every document in the file."""
        with self._lock:
            conn = self._connect()
            try:
                with conn:
                    conn.execute("DELETE FROM items")
            finally:
                conn.close()
