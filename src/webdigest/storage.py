"""Persisted key/value storage.

``SqliteStorage`` catches ``aiosqlite.Error`` internally: reads fall back to
the caller's default and writes report ``False``. Storage failures never
cross into the digest pipeline; they are logged with ``exc_info=True``.
"""

from __future__ import annotations

from typing import Any

import aiosqlite
import structlog

log = structlog.get_logger()

_CREATE_KV_TABLE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""


class SqliteStorage:
    """SQLite-backed storage implementing StorageProtocol.

    Values are stored as text; callers serialise structured values to JSON.
    """

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_KV_TABLE)
        await self._db.commit()

    async def get(self, key: str, default: Any = "") -> Any:
        try:
            cursor = await self._db.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("storage_read_error", key=key, exc_info=True)
            return default
        return default if row is None else row[0]

    async def set(self, key: str, value: Any) -> bool:
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                (key, str(value)),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("storage_write_error", key=key, exc_info=True)
            return False
        return True

    async def delete(self, key: str) -> bool:
        try:
            cursor = await self._db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("storage_delete_error", key=key, exc_info=True)
            return False
        return cursor.rowcount > 0


class MemoryStorage:
    """Volatile dict-backed storage. Nothing survives the process."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    async def get(self, key: str, default: Any = "") -> Any:
        return self._data.get(key, default)

    async def set(self, key: str, value: Any) -> bool:
        self._data[key] = value
        return True

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None
