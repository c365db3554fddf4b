"""
Per-resource-type serialization.

For a given resource type at most one cache-check, fetch and cache-write
sequence runs at a time. Calls for the same type queue behind the one in
flight; calls for different types never wait on each other.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from esi.logging import get_logger

logger = get_logger(__name__)


class ConcurrencyGuard:
    """One asyncio.Lock per resource type, created on first use."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, resource: str) -> asyncio.Lock:
        lock = self._locks.get(resource)
        if lock is None:
            lock = self._locks[resource] = asyncio.Lock()
        return lock

    def is_busy(self, resource: str) -> bool:
        """Whether a call for this resource type currently holds the slot."""
        lock = self._locks.get(resource)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def slot(self, resource: str) -> AsyncIterator[None]:
        """Hold the slot for a resource type for the duration of the block."""
        lock = self._lock_for(resource)
        if lock.locked():
            logger.debug("Waiting for in-flight fetch", resource=resource)
        async with lock:
            yield
