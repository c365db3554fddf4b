"""
Expiration policy: how long each resource type stays fresh in the cache.

TTLs follow how fast the data changes on the origin. They are kept as
independent per-resource values; there is no formula behind them.
"""

from __future__ import annotations

from typing import Mapping

from esi.exceptions import ConfigurationError

HOUR = 3600
DAY = 24 * HOUR

DEFAULT_TTLS: dict[str, int] = {
    # Near-real-time
    "industry_jobs": HOUR,
    "corp_industry_jobs": HOUR,
    "planet_detail": HOUR,
    "wallet_transactions": HOUR,
    # Mid-volatility
    "market_orders": 8 * HOUR,
    "contacts": 8 * HOUR,
    "contracts": 8 * HOUR,
    "planetary_colonies": DAY,
    "fw_stats": DAY,
    # Slowly changing; structure lookups may pass a per-call override
    "structure_info": 7 * DAY,
    "moon_extractions": 7 * DAY,
}


class ExpirationPolicy:
    """Static lookup from resource type to TTL in seconds. Performs no I/O."""

    def __init__(self, overrides: Mapping[str, int] | None = None) -> None:
        ttls = dict(DEFAULT_TTLS)
        for name, seconds in (overrides or {}).items():
            if seconds < 0:
                raise ConfigurationError(
                    "TTL must not be negative", context={"resource": name, "ttl": seconds}
                )
            ttls[name] = seconds
        self._ttls = ttls

    def ttl_for(self, resource: str, override: int | None = None) -> int:
        """TTL for a resource type, or the per-call override when given.

        Raises:
            ConfigurationError: If the resource type has no TTL.
        """
        if override is not None:
            if override < 0:
                raise ConfigurationError(
                    "TTL override must not be negative",
                    context={"resource": resource, "ttl": override},
                )
            return override
        try:
            return self._ttls[resource]
        except KeyError:
            raise ConfigurationError(
                "No TTL configured for resource", context={"resource": resource}
            ) from None

    def __contains__(self, resource: object) -> bool:
        return resource in self._ttls

    def as_dict(self) -> dict[str, int]:
        """Copy of the TTL table."""
        return dict(self._ttls)
