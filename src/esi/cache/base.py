"""
Base class for the cache stores.

CacheStore implements the read-through rules shared by every backend:
- TTL-based expiration (an expired entry is deleted on read)
- Corruption recovery (an undecodable entry is deleted on read)
- Insert-or-replace writes, single or batched
- Write failures surface as PersistenceError

Backends only implement the raw primitives (_load, _save, _delete,
_delete_all) over JSON-compatible documents.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable

from esi.exceptions import DecodeError, InvalidRequestError, PersistenceError
from esi.logging import get_logger
from esi.types import CacheEntry, CacheKey, Codec, is_identifier, utc_now

logger = get_logger(__name__)


class CacheStore(ABC):
    """Persistent key/value storage with a timestamp per entry.

    Entries are addressed by (namespace, key). There is at most one entry
    per address; writes replace it.
    """

    # Exceptions a backend may raise for I/O problems
    io_errors: tuple[type[BaseException], ...] = (OSError,)

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock

    @abstractmethod
    async def init(self) -> None:
        """Prepare the backend (directories, connections, schema)."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release backend resources."""
        ...

    @abstractmethod
    async def _load(
        self, namespace: str, key: CacheKey, cutoff: datetime
    ) -> tuple[Any, datetime] | None:
        """Read the stored document and its timestamp.

        Backends may use ``cutoff`` to filter expired entries at the source.

        Raises:
            DecodeError: If the stored entry itself is unreadable.
        """
        ...

    @abstractmethod
    async def _save(
        self, namespace: str, rows: list[tuple[CacheKey, Any]], stored_at: datetime
    ) -> None:
        """Insert or replace documents."""
        ...

    @abstractmethod
    async def _delete(self, namespace: str, key: CacheKey) -> None:
        """Delete one entry; no error if it is absent."""
        ...

    @abstractmethod
    async def _delete_all(self, namespace: str) -> None:
        """Delete every entry in a namespace; no error if it is empty."""
        ...

    @staticmethod
    def _check_namespace(namespace: str) -> None:
        if not is_identifier(namespace):
            raise InvalidRequestError(
                "Cache namespace must be an identifier",
                context={"namespace": namespace},
            )

    async def get(
        self,
        namespace: str,
        key: CacheKey,
        ttl_seconds: float,
        codec: Codec[Any],
    ) -> CacheEntry[Any] | None:
        """Get a fresh, decodable entry.

        Returns None when the entry is missing, expired or corrupt. Expired
        and corrupt entries are deleted. Read-side I/O errors are logged and
        treated as a miss.
        """
        self._check_namespace(namespace)
        now = self._clock()
        cutoff = now - timedelta(seconds=ttl_seconds)

        try:
            loaded = await self._load(namespace, key, cutoff)
        except DecodeError as e:
            logger.warning(
                "Discarding unreadable cache entry",
                namespace=namespace,
                key=str(key),
                error=str(e),
            )
            await self._discard(namespace, key)
            return None
        except self.io_errors as e:
            logger.warning(
                "Cache read failed, treating as miss",
                namespace=namespace,
                key=str(key),
                error=str(e),
            )
            return None

        if loaded is None:
            logger.debug("Cache miss", namespace=namespace, key=str(key))
            return None

        document, stored_at = loaded
        if stored_at <= cutoff:
            logger.info(
                "Cache entry expired",
                namespace=namespace,
                key=str(key),
                age_seconds=int((now - stored_at).total_seconds()),
            )
            await self._discard(namespace, key)
            return None

        try:
            value = codec.load(document)
        except DecodeError as e:
            logger.warning(
                "Discarding corrupt cache entry",
                namespace=namespace,
                key=str(key),
                error=e.message,
            )
            await self._discard(namespace, key)
            return None

        logger.debug(
            "Cache hit",
            namespace=namespace,
            key=str(key),
            remaining_seconds=int(ttl_seconds - (now - stored_at).total_seconds()),
        )
        return CacheEntry(namespace=namespace, key=key, value=value, stored_at=stored_at)

    async def put(
        self, namespace: str, key: CacheKey, value: Any, codec: Codec[Any]
    ) -> None:
        """Insert or replace one entry.

        Raises:
            PersistenceError: If the value cannot be encoded or written.
        """
        await self.put_many(namespace, [(key, value)], codec)

    async def put_many(
        self,
        namespace: str,
        items: Iterable[tuple[CacheKey, Any]],
        codec: Codec[Any],
    ) -> None:
        """Insert or replace several entries in one batch.

        All entries in the batch share one timestamp.

        Raises:
            PersistenceError: If a value cannot be encoded or written.
        """
        self._check_namespace(namespace)
        items = list(items)
        if not items:
            return

        try:
            rows = [(key, codec.dump(value)) for key, value in items]
        except (TypeError, ValueError) as e:
            raise PersistenceError(
                "Failed to encode cache entry",
                context={"namespace": namespace, "error": str(e)},
            ) from e

        try:
            await self._save(namespace, rows, self._clock())
        except self.io_errors as e:
            raise PersistenceError(
                "Failed to write cache entry",
                context={
                    "namespace": namespace,
                    "keys": [str(key) for key, _ in rows[:5]],
                    "error": str(e),
                },
            ) from e

        logger.debug("Cached entries", namespace=namespace, count=len(rows))

    async def clear(self, namespace: str, key: CacheKey | None = None) -> None:
        """Remove one entry, or every entry of a namespace.

        Idempotent: clearing something that is not there is not an error.

        Raises:
            PersistenceError: If the backend fails to delete.
        """
        self._check_namespace(namespace)
        try:
            if key is None:
                await self._delete_all(namespace)
            else:
                await self._delete(namespace, key)
        except self.io_errors as e:
            raise PersistenceError(
                "Failed to clear cache",
                context={"namespace": namespace, "key": str(key), "error": str(e)},
            ) from e

        logger.info(
            "Cleared cache",
            namespace=namespace,
            key=str(key) if key is not None else "*",
        )

    async def _discard(self, namespace: str, key: CacheKey) -> None:
        """Delete an entry found stale or corrupt during a read."""
        try:
            await self._delete(namespace, key)
        except self.io_errors as e:
            logger.warning(
                "Failed to delete cache entry",
                namespace=namespace,
                key=str(key),
                error=str(e),
            )
