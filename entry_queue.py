"""Durable entry queue backed by SQLite.

This module provides the staging area between webhook intake and the
drain cycle. It is a plain key-value table: the webhook writes each entry
under "entry:<id>", the drainer lists that prefix, reads each entry and
deletes it only after the summary was committed to Miniflux.

Database Schema:
    entries table:
        - key (TEXT, PK): Queue key, "entry:<id>"
        - value (TEXT): Entry serialized as JSON
        - updated_at (INTEGER): Last write timestamp (Unix epoch)

Features:
    - WAL mode so the webhook server and a separate drain process can share
      the file
    - Last-write-wins puts (INSERT OR REPLACE, no merge)
    - Prefix listing restricted to one key namespace
    - Context manager support for auto-cleanup

All operations are independent single-key statements committed immediately,
so concurrent pipelines working on different keys never interfere.
"""

import logging
import sqlite3
import time
from pathlib import Path

from pydantic import ValidationError

from models.entry import Entry, KEY_PREFIX

logger = logging.getLogger(__name__)


class EntryQueue:
    """SQLite key-value store holding entries that still need a summary.

    Example:
        >>> with EntryQueue("queue.db") as queue:
        ...     await queue.put_entry(entry)
        ...     keys = await queue.list_keys()
        ...     entry = await queue.get_entry(keys[0])
        ...     await queue.delete(keys[0])
    """

    SCHEMA = """
    -- One row per pending entry
    CREATE TABLE IF NOT EXISTS entries (
        key TEXT PRIMARY KEY,            -- "entry:<id>"
        value TEXT NOT NULL,             -- Entry JSON
        updated_at INTEGER NOT NULL      -- Last write (Unix epoch)
    );
    """

    path: Path
    conn: sqlite3.Connection

    def __init__(self, path: Path | str):
        """Open (or create) the queue database.

        Args:
            path: Path to SQLite database file, or ":memory:"
        """
        self.path = Path(path)
        self.conn = sqlite3.connect(str(path))
        self.conn.row_factory = sqlite3.Row

        if str(path) != ":memory:":
            # WAL mode allows concurrent readers during writes
            self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.executescript(self.SCHEMA)
        self.conn.commit()
        logger.debug("Queue initialized | path=%s", self.path)

    async def put(self, key: str, value: str) -> None:
        """Store a raw value, overwriting any existing value for the key."""
        self.conn.execute(
            "INSERT OR REPLACE INTO entries (key, value, updated_at) VALUES (?, ?, ?)",
            (key, value, int(time.time())),
        )
        self.conn.commit()

    async def get(self, key: str) -> str | None:
        """Return the raw value stored under a key, or None if absent."""
        cursor = self.conn.execute("SELECT value FROM entries WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row["value"] if row else None

    async def list_keys(self, prefix: str = KEY_PREFIX) -> list[str]:
        """List all keys that start with a prefix, in key order."""
        cursor = self.conn.execute(
            "SELECT key FROM entries WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        )
        return [row["key"] for row in cursor.fetchall()]

    async def delete(self, key: str) -> bool:
        """Delete a key.

        Returns:
            True if a row was removed, False if the key was already gone
        """
        cursor = self.conn.execute("DELETE FROM entries WHERE key = ?", (key,))
        self.conn.commit()
        return cursor.rowcount > 0

    async def put_entry(self, entry: Entry) -> str:
        """Stage an entry under its queue key.

        Returns:
            The key written
        """
        key = entry.queue_key
        await self.put(key, entry.model_dump_json())
        logger.debug("Entry staged | key=%s", key)
        return key

    async def get_entry(self, key: str) -> Entry | None:
        """Load and parse the entry stored under a key.

        Returns:
            The entry, or None when the key is absent or the stored value
            does not parse as an Entry
        """
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return Entry.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Stored entry unparsable | key=%s errors=%d", key, e.error_count())
            return None

    def count(self, prefix: str = KEY_PREFIX) -> int:
        """Number of keys under a prefix."""
        cursor = self.conn.execute(
            "SELECT COUNT(*) AS total FROM entries WHERE substr(key, 1, ?) = ?",
            (len(prefix), prefix),
        )
        return cursor.fetchone()["total"] or 0

    def oldest(self, limit: int = 20) -> list[dict]:
        """Return the longest-waiting rows, oldest first.

        Args:
            limit: Maximum rows to return (0 = all)

        Returns:
            List of dicts with key, value and updated_at
        """
        query = "SELECT key, value, updated_at FROM entries ORDER BY updated_at, key"
        params: tuple = ()
        if limit > 0:
            query += " LIMIT ?"
            params = (limit,)
        cursor = self.conn.execute(query, params)
        return [dict(row) for row in cursor.fetchall()]

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()

    def __enter__(self) -> "EntryQueue":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
