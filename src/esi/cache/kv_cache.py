"""
SQLite-backed cache store using aiosqlite.

One table per namespace, one row per key:

    primary_id INTEGER, secondary_id INTEGER, payload TEXT, stored_at TEXT
    PRIMARY KEY (primary_id, secondary_id)

Expiry is enforced in SQL by filtering ``stored_at > cutoff`` at read time;
a filtered miss also deletes the expired row for that key. Writes are
INSERT OR REPLACE, batched with executemany for bulk population.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable

import aiosqlite
import orjson

from esi.cache.base import CacheStore
from esi.exceptions import DecodeError
from esi.logging import get_logger
from esi.types import CacheKey, format_timestamp, parse_timestamp, utc_now

logger = get_logger(__name__)


class SQLiteCacheStore(CacheStore):
    """Cache store keeping one SQLite row per key."""

    io_errors = (OSError, aiosqlite.Error)

    def __init__(
        self,
        db_path: str | Path,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the SQLite store.

        Args:
            db_path: Path of the SQLite database file.
            clock: Source of the current time.
        """
        super().__init__(clock)
        self.db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None
        self._tables: set[str] = set()

    async def init(self) -> None:
        """Open the database connection."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self.db_path)
        self._db.row_factory = aiosqlite.Row
        logger.info("SQLite cache initialized", db_path=str(self.db_path))

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            self._tables.clear()

    def _conn(self) -> aiosqlite.Connection:
        if not self._db:
            raise RuntimeError("SQLiteCacheStore not initialized. Call init() first.")
        return self._db

    async def _ensure_table(self, namespace: str) -> aiosqlite.Connection:
        db = self._conn()
        if namespace not in self._tables:
            # namespace is validated as an identifier before it reaches here
            await db.execute(f"""
                CREATE TABLE IF NOT EXISTS "{namespace}" (
                    primary_id INTEGER NOT NULL,
                    secondary_id INTEGER NOT NULL DEFAULT 0,
                    payload TEXT NOT NULL,
                    stored_at TEXT NOT NULL,
                    PRIMARY KEY (primary_id, secondary_id)
                )
            """)
            await db.commit()
            self._tables.add(namespace)
        return db

    async def _load(
        self, namespace: str, key: CacheKey, cutoff: datetime
    ) -> tuple[Any, datetime] | None:
        db = await self._ensure_table(namespace)
        cutoff_text = format_timestamp(cutoff)

        cursor = await db.execute(
            f"""
            SELECT payload, stored_at FROM "{namespace}"
            WHERE primary_id = ? AND secondary_id = ? AND stored_at > ?
            """,
            (*key.columns, cutoff_text),
        )
        row = await cursor.fetchone()
        await cursor.close()

        if row is None:
            cursor = await db.execute(
                f"""
                DELETE FROM "{namespace}"
                WHERE primary_id = ? AND secondary_id = ? AND stored_at <= ?
                """,
                (*key.columns, cutoff_text),
            )
            await db.commit()
            if cursor.rowcount:
                logger.info("Purged expired cache row", namespace=namespace, key=str(key))
            return None

        try:
            return orjson.loads(row["payload"]), parse_timestamp(row["stored_at"])
        except ValueError as e:
            raise DecodeError(
                "Unreadable cache row",
                context={"namespace": namespace, "key": str(key), "error": str(e)},
            ) from e

    async def _save(
        self, namespace: str, rows: list[tuple[CacheKey, Any]], stored_at: datetime
    ) -> None:
        db = await self._ensure_table(namespace)
        timestamp = format_timestamp(stored_at)

        try:
            params = [
                (*key.columns, orjson.dumps(document).decode(), timestamp)
                for key, document in rows
            ]
        except orjson.JSONEncodeError as e:
            raise OSError(f"Cannot serialize cache row: {e}") from e

        await db.executemany(
            f"""
            INSERT OR REPLACE INTO "{namespace}" (
                primary_id, secondary_id, payload, stored_at
            ) VALUES (?, ?, ?, ?)
            """,
            params,
        )
        await db.commit()

    async def _delete(self, namespace: str, key: CacheKey) -> None:
        db = await self._ensure_table(namespace)
        await db.execute(
            f'DELETE FROM "{namespace}" WHERE primary_id = ? AND secondary_id = ?',
            key.columns,
        )
        await db.commit()

    async def _delete_all(self, namespace: str) -> None:
        db = await self._ensure_table(namespace)
        await db.execute(f'DELETE FROM "{namespace}"')
        await db.commit()
