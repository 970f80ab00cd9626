"""Async key-value stores backing the prediction tracker.

The tracker only needs ``get``/``set``/``remove`` on string blobs. Two
backends are provided: an in-memory dict (tests, throwaway runs) and an
SQLite table accessed through aiosqlite.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import aiosqlite

from katabatic.common.errors import PersistenceReadError, PersistenceWriteError

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


class KeyValueStore(Protocol):
    """Protocol for the persistence collaborator."""

    async def get(self, key: str) -> str | None:
        """Return the blob stored under *key*, or None."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous blob."""
        ...

    async def remove(self, key: str) -> None:
        """Delete *key*. Removing a missing key is not an error."""
        ...


class MemoryStore:
    """Dict-backed store. Contents are lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SqliteStore:
    """Key-value store in a single SQLite table (via aiosqlite).

    Backend failures are wrapped in PersistenceReadError/PersistenceWriteError
    so callers never see driver-specific exceptions.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path

    async def _ensure_db(self) -> None:
        """Create database file and table if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_TABLE)
            await db.commit()

    async def get(self, key: str) -> str | None:
        try:
            await self._ensure_db()
            async with aiosqlite.connect(str(self._db_path)) as db:
                cursor = await db.execute(
                    "SELECT data FROM kv_store WHERE key = ?", (key,),
                )
                row = await cursor.fetchone()
                return row[0] if row else None
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceReadError(f"failed to read {key!r}: {exc}") from exc

    async def set(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            await self._ensure_db()
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    """INSERT INTO kv_store (key, data, updated_at)
                       VALUES (?, ?, ?)
                       ON CONFLICT (key) DO UPDATE
                       SET data = excluded.data, updated_at = excluded.updated_at""",
                    (key, value, now),
                )
                await db.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceWriteError(f"failed to write {key!r}: {exc}") from exc
        logger.debug("Stored %d chars under %s", len(value), key)

    async def remove(self, key: str) -> None:
        try:
            await self._ensure_db()
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                await db.commit()
        except (aiosqlite.Error, OSError) as exc:
            raise PersistenceWriteError(f"failed to remove {key!r}: {exc}") from exc
