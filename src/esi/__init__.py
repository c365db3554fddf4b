"""
Cached clients for the EVE Swagger Interface (ESI).

Every resource is served read-through: a fresh cache entry is returned
without touching the network, otherwise the resource is fetched (page by
page for listings), decoded, cached and returned.
"""

from esi.client import ResourceClient
from esi.clients import ESIClients
from esi.http import HttpFetcher, StaticTokenProvider, TokenProvider
from esi.policy import ExpirationPolicy
from esi.types import Backend, CacheKey, ResourceDescriptor

__all__ = [
    "Backend",
    "CacheKey",
    "ESIClients",
    "ExpirationPolicy",
    "HttpFetcher",
    "ResourceClient",
    "ResourceDescriptor",
    "StaticTokenProvider",
    "TokenProvider",
]
