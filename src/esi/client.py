"""
Read-through resource client.

ResourceClient is what callers use. One instance serves one resource type:

    Idle -> CacheLookup -> Hit -> Return
                        -> Miss/Expired/Forced -> NetworkFetch
                               -> Success -> WriteCache -> Return
                               -> Failure -> Propagate

Network fetches (and the cache re-check in front of them) run inside the
resource type's ConcurrencyGuard slot, so identical cold calls fetch once.
"""

from __future__ import annotations

from typing import Any, Generic, Iterable, Mapping, TypeVar

import httpx
from pydantic import BaseModel

from esi.cache.base import CacheStore
from esi.exceptions import ForbiddenError, HttpError, InvalidRequestError, PersistenceError
from esi.guard import ConcurrencyGuard
from esi.http import AuthenticatedFetcher
from esi.logging import get_logger, log_context
from esi.pagination import PaginatedFetcher
from esi.policy import ExpirationPolicy
from esi.types import CacheKey, Codec, ResourceDescriptor

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_API_ROOT = "https://esi.evetech.net/latest"
DEFAULT_DATASOURCE = "tranquility"


class ForbiddenMarker(BaseModel):
    """Tombstone remembering that a lookup was refused with 403."""

    status: int = 403
    body: str = ""


_FORBIDDEN_CODEC: Codec[ForbiddenMarker] = Codec(ForbiddenMarker)


class ResourceClient(Generic[T]):
    """Cached, serialized access to one ESI resource type."""

    def __init__(
        self,
        descriptor: ResourceDescriptor,
        fetcher: AuthenticatedFetcher,
        store: CacheStore,
        policy: ExpirationPolicy,
        guard: ConcurrencyGuard,
        paginator: PaginatedFetcher | None = None,
        api_root: str = DEFAULT_API_ROOT,
        datasource: str = DEFAULT_DATASOURCE,
    ) -> None:
        """Initialize the client.

        Args:
            descriptor: Configuration of the resource type.
            fetcher: Network collaborator performing authenticated requests.
            store: Cache store matching the descriptor's backend.
            policy: TTL table.
            guard: Serialization domains shared by all clients.
            paginator: Page accumulator for paginated resources.
            api_root: ESI base URL including the version segment.
            datasource: Value of the datasource query parameter.
        """
        self.descriptor = descriptor
        self.fetcher = fetcher
        self.store = store
        self.policy = policy
        self.guard = guard
        self.paginator = paginator or PaginatedFetcher()
        self.api_root = api_root.rstrip("/")
        self.datasource = datasource

    @property
    def name(self) -> str:
        """Resource type name, also the cache namespace."""
        return self.descriptor.name

    @property
    def codec(self) -> Codec[T]:
        return self.descriptor.codec

    def build_url(self, params: Mapping[str, Any], page: int | None = None) -> str:
        """Build the request URL for the given path parameters.

        Raises:
            InvalidRequestError: If parameters are missing or the URL is malformed.
        """
        path = self.descriptor.path_for(params)
        query = {"datasource": self.datasource, **dict(self.descriptor.query)}
        if page is not None:
            query["page"] = str(page)
        try:
            return str(httpx.URL(f"{self.api_root}{path}", params=query))
        except httpx.InvalidURL as e:
            raise InvalidRequestError(
                "Malformed URL", context={"resource": self.name, "path": path}
            ) from e

    async def get(
        self,
        identity: int,
        *,
        force_refresh: bool = False,
        ttl_override: int | None = None,
        **path_params: Any,
    ) -> T:
        """Get the resource, from cache when fresh, else from ESI.

        Args:
            identity: Character whose token authenticates the request. Also
                fills the ``character_id`` path parameter unless given.
            force_refresh: Skip the cache and always fetch.
            ttl_override: Per-call TTL in seconds instead of the policy value.
            **path_params: Remaining path parameters (planet_id, ...).

        Returns:
            The decoded resource value.

        Raises:
            InvalidRequestError: If the request cannot be built.
            TransportError: If the fetch fails.
            DecodeError: If the fresh response does not match the schema.
            ForbiddenError: If the lookup is in the forbidden cache.
        """
        params = {"character_id": identity, **path_params}
        key = self.descriptor.key_for(params)
        ttl = self.policy.ttl_for(self.name, ttl_override)

        with log_context(character_id=identity, resource=self.name):
            if not force_refresh:
                await self._raise_if_forbidden(key)
                entry = await self.store.get(self.name, key, ttl, self.codec)
                if entry is not None:
                    logger.info("Using cached data", key=str(key))
                    return entry.value

            async with self.guard.slot(self.name):
                if not force_refresh:
                    await self._raise_if_forbidden(key)
                    entry = await self.store.get(self.name, key, ttl, self.codec)
                    if entry is not None:
                        logger.info("Using data cached by a preceding call", key=str(key))
                        return entry.value

                value = await self._fetch_live(identity, params, key)
                await self._write_back(key, value, clear_forbidden=force_refresh)

        return value

    async def invalidate(self, identity: int | None = None, **path_params: Any) -> None:
        """Drop cached data.

        With key parameters (``identity`` counts as ``character_id``) only that
        entry is removed; without any, the whole namespace is cleared.

        Raises:
            InvalidRequestError: If only part of a composite key is given.
            PersistenceError: If the store fails to delete.
        """
        params = dict(path_params)
        if identity is not None:
            params.setdefault("character_id", identity)

        if any(params.get(name) is not None for name in self.descriptor.key_fields):
            key: CacheKey | None = self.descriptor.key_for(params)
        else:
            key = None

        await self.store.clear(self.name, key)
        if self.descriptor.forbidden_ttl_seconds is not None:
            await self.store.clear(self.descriptor.forbidden_namespace, key)

    async def store_many(self, values: Mapping[CacheKey, T] | Iterable[tuple[CacheKey, T]]) -> bool:
        """Populate the cache with several values in one batch.

        Returns:
            True if the batch was written. A failed write is logged and
            reported as False.
        """
        items = list(values.items() if isinstance(values, Mapping) else values)
        try:
            await self.store.put_many(self.name, items, self.codec)
        except PersistenceError as e:
            logger.warning("Failed to cache batch", count=len(items), error=str(e))
            return False
        return True

    async def _fetch_live(self, identity: int, params: Mapping[str, Any], key: CacheKey) -> T:
        try:
            if self.descriptor.paginated:
                value = await self.paginator.fetch_all(
                    lambda page: self._fetch_page(identity, params, page),
                    self.descriptor.end_signatures,
                )
            else:
                raw = await self.fetcher.fetch(self.build_url(params), identity)
                value = self.codec.decode(raw)
        except HttpError as e:
            if e.status == 403 and self.descriptor.forbidden_ttl_seconds is not None:
                await self._remember_forbidden(key, e)
            logger.error("Failed to fetch from ESI", key=str(key), error=str(e))
            raise

        logger.info(
            "Fetched from ESI",
            key=str(key),
            count=len(value) if isinstance(value, list) else 1,
        )
        return value

    async def _fetch_page(self, identity: int, params: Mapping[str, Any], page: int) -> list[Any]:
        raw = await self.fetcher.fetch(
            self.build_url(params, page=page),
            identity,
            end_signatures=self.descriptor.end_signatures,
        )
        return self.codec.decode(raw)

    async def _write_back(self, key: CacheKey, value: T, clear_forbidden: bool) -> None:
        try:
            await self.store.put(self.name, key, value, self.codec)
            if clear_forbidden and self.descriptor.forbidden_ttl_seconds is not None:
                await self.store.clear(self.descriptor.forbidden_namespace, key)
        except PersistenceError as e:
            logger.warning("Failed to cache fresh data", key=str(key), error=str(e))

    async def _raise_if_forbidden(self, key: CacheKey) -> None:
        ttl = self.descriptor.forbidden_ttl_seconds
        if ttl is None:
            return
        entry = await self.store.get(self.descriptor.forbidden_namespace, key, ttl, _FORBIDDEN_CODEC)
        if entry is not None:
            logger.info("Lookup is in the forbidden cache", key=str(key))
            raise ForbiddenError(
                entry.value.body or "Forbidden",
                context={"resource": self.name, "key": str(key)},
            )

    async def _remember_forbidden(self, key: CacheKey, error: HttpError) -> None:
        try:
            await self.store.put(
                self.descriptor.forbidden_namespace,
                key,
                ForbiddenMarker(status=error.status, body=error.body),
                _FORBIDDEN_CODEC,
            )
            logger.info("Remembered forbidden lookup", key=str(key))
        except PersistenceError as e:
            logger.warning("Failed to cache forbidden lookup", key=str(key), error=str(e))
