"""
Pytest configuration and fixtures for ESI client tests.
"""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Generator, Mapping, Sequence
from unittest.mock import patch

import httpx
import orjson
import pytest

from esi.cache.file_cache import FileCacheStore
from esi.cache.kv_cache import SQLiteCacheStore
from esi.config import Settings, clear_settings_cache
from esi.http import AuthenticatedFetcher


class FakeClock:
    """Controllable time source for the cache stores."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


Response = bytes | Exception


class FakeFetcher(AuthenticatedFetcher):
    """Records requested URLs and answers from a responder function.

    The responder receives the URL and returns raw bytes or an exception
    instance to raise. When a gate is given, every fetch waits for it.
    """

    def __init__(
        self,
        responder: Callable[[str], Response],
        delay: float = 0.0,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.responder = responder
        self.delay = delay
        self.gate = gate
        self.calls: list[str] = []
        self.identities: list[int] = []
        self.end_signatures: list[Sequence[str]] = []

    async def fetch(
        self,
        url: str,
        identity: int,
        headers: Mapping[str, str] | None = None,
        end_signatures: Sequence[str] = (),
    ) -> bytes:
        self.calls.append(url)
        self.identities.append(identity)
        self.end_signatures.append(end_signatures)
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.responder(url)
        if isinstance(result, Exception):
            raise result
        return result

    def pages_requested(self) -> list[int]:
        return [int(httpx.URL(url).params["page"]) for url in self.calls]


def page_of(url: str) -> int:
    """Page number of a request URL."""
    return int(httpx.URL(url).params["page"])


def dumps(value: Any) -> bytes:
    return orjson.dumps(value)


def market_order(order_id: int, price: float = 1000.0) -> dict[str, Any]:
    return {
        "order_id": order_id,
        "type_id": 34,
        "location_id": 60003760,
        "region_id": 10000002,
        "price": price,
        "volume_remain": 10,
        "volume_total": 20,
        "issued": "2025-01-01T00:00:00Z",
        "duration": 90,
        "range": "region",
        "is_buy_order": False,
    }


def contact(contact_id: int, standing: float = 5.0) -> dict[str, Any]:
    return {
        "contact_id": contact_id,
        "contact_type": "character",
        "standing": standing,
    }


def structure(name: str = "Jita - Keepstar") -> dict[str, Any]:
    return {
        "name": name,
        "owner_id": 98000001,
        "solar_system_id": 30000142,
        "type_id": 35834,
    }


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def clock() -> FakeClock:
    """Provide a controllable clock."""
    return FakeClock()


@pytest.fixture
async def file_store(temp_dir: Path, clock: FakeClock) -> FileCacheStore:
    """Create an initialized file cache store."""
    store = FileCacheStore(temp_dir / "documents", clock=clock)
    await store.init()
    yield store
    await store.close()


@pytest.fixture
async def sqlite_store(temp_dir: Path, clock: FakeClock) -> SQLiteCacheStore:
    """Create an initialized SQLite cache store."""
    store = SQLiteCacheStore(temp_dir / "cache.db", clock=clock)
    await store.init()
    yield store
    await store.close()


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "ESI_BASE_URL": "https://esi.example.test/",
        "ESI_VERSION": "latest",
        "ESI_DATASOURCE": "tranquility",
        "ESI_USER_AGENT": "Test Agent test@example.com",
        "ESI_ACCESS_TOKEN": "test-access-token-1234567890",
        "CACHE_DIR": ".test_cache",
        "HTTP_TIMEOUT": "5",
        "HTTP_MAX_RETRIES": "2",
        "MAX_PAGES": "50",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(
    mock_env_vars: dict[str, str], temp_dir: Path
) -> Generator[Settings, None, None]:
    """Provide a Settings instance using temp_dir for the cache."""
    with patch.dict(os.environ, {"CACHE_DIR": str(temp_dir / "cache")}):
        clear_settings_cache()
        from esi.config import get_settings

        settings = get_settings()
        settings.ensure_directories()
        yield settings
        clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
