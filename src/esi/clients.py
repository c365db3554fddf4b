"""
Wiring for the resource clients.

ESIClients builds one ResourceClient per descriptor, all sharing a single
fetcher, one cache store per backend, one ConcurrencyGuard and one
ExpirationPolicy, and owns their lifecycle:

    async with ESIClients.from_settings(token_provider=provider) as esi:
        jobs = await esi["industry_jobs"].get(character_id)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Iterator, Mapping

from esi.cache.base import CacheStore
from esi.cache.file_cache import FileCacheStore
from esi.cache.kv_cache import SQLiteCacheStore
from esi.client import DEFAULT_API_ROOT, DEFAULT_DATASOURCE, ResourceClient
from esi.config import Settings, get_settings
from esi.exceptions import ConfigurationError
from esi.guard import ConcurrencyGuard
from esi.http import AuthenticatedFetcher, HttpFetcher, StaticTokenProvider, TokenProvider
from esi.logging import get_logger
from esi.pagination import PaginatedFetcher
from esi.policy import ExpirationPolicy
from esi.resources import RESOURCES
from esi.types import Backend, ResourceDescriptor, utc_now

logger = get_logger(__name__)


class ESIClients:
    """Registry of resource clients with shared collaborators."""

    def __init__(
        self,
        fetcher: AuthenticatedFetcher,
        stores: Mapping[Backend, CacheStore],
        policy: ExpirationPolicy | None = None,
        guard: ConcurrencyGuard | None = None,
        paginator: PaginatedFetcher | None = None,
        api_root: str = DEFAULT_API_ROOT,
        datasource: str = DEFAULT_DATASOURCE,
        resources: Mapping[str, ResourceDescriptor] = RESOURCES,
    ) -> None:
        """Build a client for every resource.

        Raises:
            ConfigurationError: If a resource has no TTL or no store for its backend.
        """
        self.fetcher = fetcher
        self.stores = dict(stores)
        self.policy = policy or ExpirationPolicy()
        self.guard = guard or ConcurrencyGuard()
        self.paginator = paginator or PaginatedFetcher()

        self._clients: dict[str, ResourceClient[Any]] = {}
        for name, descriptor in resources.items():
            if name not in self.policy:
                raise ConfigurationError("No TTL configured for resource", context={"resource": name})
            store = self.stores.get(descriptor.backend)
            if store is None:
                raise ConfigurationError(
                    "No cache store for backend",
                    context={"resource": name, "backend": descriptor.backend.value},
                )
            self._clients[name] = ResourceClient(
                descriptor,
                fetcher=self.fetcher,
                store=store,
                policy=self.policy,
                guard=self.guard,
                paginator=self.paginator,
                api_root=api_root,
                datasource=datasource,
            )

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        token_provider: TokenProvider | None = None,
        ttl_overrides: Mapping[str, int] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> ESIClients:
        """Build the default stack from settings.

        Args:
            settings: Settings to use; defaults to get_settings().
            token_provider: Token source; defaults to ESI_ACCESS_TOKEN.
            ttl_overrides: Per-resource TTL replacements.
            clock: Time source for the cache stores.
        """
        settings = settings or get_settings()
        token_provider = token_provider or StaticTokenProvider(settings.ESI_ACCESS_TOKEN)

        fetcher = HttpFetcher(
            token_provider,
            user_agent=settings.ESI_USER_AGENT,
            timeout=settings.HTTP_TIMEOUT,
            max_retries=settings.HTTP_MAX_RETRIES,
        )
        stores: dict[Backend, CacheStore] = {
            Backend.FILE: FileCacheStore(settings.CACHE_DIR / "documents", clock=clock),
            Backend.TABLE: SQLiteCacheStore(settings.cache_db_path, clock=clock),
        }
        return cls(
            fetcher,
            stores,
            policy=ExpirationPolicy(ttl_overrides),
            paginator=PaginatedFetcher(settings.MAX_PAGES),
            api_root=settings.api_root,
            datasource=settings.ESI_DATASOURCE,
        )

    async def init(self) -> None:
        """Initialize every cache store."""
        for store in self.stores.values():
            await store.init()
        logger.info("ESI clients ready", resources=len(self._clients))

    async def close(self) -> None:
        """Close the fetcher and the cache stores."""
        await self.fetcher.close()
        for store in self.stores.values():
            await store.close()

    async def __aenter__(self) -> ESIClients:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def __getitem__(self, name: str) -> ResourceClient[Any]:
        try:
            return self._clients[name]
        except KeyError:
            raise ConfigurationError("Unknown resource", context={"resource": name}) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._clients)

    def __len__(self) -> int:
        return len(self._clients)

    async def clear_all(self) -> None:
        """Drop every cached entry of every resource."""
        for client in self._clients.values():
            await client.invalidate()
        logger.info("Cleared all caches")
