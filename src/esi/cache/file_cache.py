"""
File-backed cache store.

One JSON document per key under a directory per namespace:

    {cache_dir}/{namespace}/{primary_id}[_{secondary_id}].json

Each document embeds its own timestamp:

    {"stored_at": "2025-01-01T00:00:00.000000Z", "data": <payload>}

Writes go to a temporary file first and are moved into place with
os.replace, so a reader never sees a half-written document. File I/O runs
in a worker thread to keep the event loop responsive.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

import orjson

from esi.cache.base import CacheStore
from esi.exceptions import DecodeError
from esi.logging import get_logger
from esi.types import CacheKey, format_timestamp, parse_timestamp, utc_now

logger = get_logger(__name__)


def _write_atomic(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        tmp_path.write_bytes(content)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


def _remove_tree(directory: Path) -> None:
    try:
        shutil.rmtree(directory)
    except FileNotFoundError:
        pass


def _read_optional(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


class FileCacheStore(CacheStore):
    """Cache store keeping one JSON document per key."""

    io_errors = (OSError,)

    def __init__(
        self,
        cache_dir: str | Path,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the file store.

        Args:
            cache_dir: Root directory; each namespace gets a subdirectory.
            clock: Source of the current time.
        """
        super().__init__(clock)
        self.cache_dir = Path(cache_dir)

    async def init(self) -> None:
        """Create the root directory."""
        await asyncio.to_thread(self.cache_dir.mkdir, parents=True, exist_ok=True)
        logger.info("File cache initialized", cache_dir=str(self.cache_dir))

    async def close(self) -> None:
        """Nothing to release."""

    def path_for(self, namespace: str, key: CacheKey) -> Path:
        """Path of the document for a key."""
        return self.cache_dir / namespace / key.filename

    async def _load(
        self, namespace: str, key: CacheKey, cutoff: datetime
    ) -> tuple[Any, datetime] | None:
        raw = await asyncio.to_thread(_read_optional, self.path_for(namespace, key))
        if raw is None:
            return None

        try:
            envelope = orjson.loads(raw)
            stored_at = parse_timestamp(envelope["stored_at"])
            data = envelope["data"]
        except (ValueError, KeyError, TypeError) as e:
            raise DecodeError(
                "Unreadable cache document",
                context={"namespace": namespace, "key": str(key), "error": str(e)},
            ) from e

        return data, stored_at

    async def _save(
        self, namespace: str, rows: list[tuple[CacheKey, Any]], stored_at: datetime
    ) -> None:
        timestamp = format_timestamp(stored_at)
        for key, document in rows:
            try:
                content = orjson.dumps({"stored_at": timestamp, "data": document})
            except orjson.JSONEncodeError as e:
                # Re-raised as OSError so the base class reports a PersistenceError
                raise OSError(f"Cannot serialize cache document: {e}") from e
            await asyncio.to_thread(_write_atomic, self.path_for(namespace, key), content)

    async def _delete(self, namespace: str, key: CacheKey) -> None:
        await asyncio.to_thread(self.path_for(namespace, key).unlink, missing_ok=True)

    async def _delete_all(self, namespace: str) -> None:
        await asyncio.to_thread(_remove_tree, self.cache_dir / namespace)
