"""Resolves the display order of a specialization's major traits, tier by tier.

The readable codec only depends on the ``TierOrderResolver`` protocol.
``Gw2TraitResolver`` is the production implementation, backed by the
Guild Wars 2 API with a read-through cache.
"""

import logging
import os
import time
from typing import Any, Dict, Optional, Protocol, Tuple
import httpx
from exceptions import ExternalLookupError

TierOrder = Tuple[Tuple[int, ...], Tuple[int, ...], Tuple[int, ...]]

GW2_API_BASE = os.getenv("GW2_API_BASE", "https://api.guildwars2.com/v2")
CACHE_SECONDS = int(os.getenv("GW2_CACHE_SECONDS", str(24 * 60 * 60)))


class TierOrderResolver(Protocol):
    """Anything that can list a specialization's major trait IDs per tier."""

    async def resolve_tier_order(self, specialization_id: int) -> TierOrder:
        ...


def group_by_tier(traits) -> TierOrder:
    """Group trait records (``id``, ``tier``, ``order``) into three tiers sorted by display order."""
    tiers = []
    for tier in (1, 2, 3):
        in_tier = sorted((t for t in traits if t.get("tier") == tier), key=lambda t: t.get("order", 0))
        tiers.append(tuple(t["id"] for t in in_tier))
    return tuple(tiers)


class Gw2TraitResolver:
    """Fetches specialization and trait data from the GW2 API, caching responses."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None,
                 api_base: str = GW2_API_BASE, cache_seconds: int = CACHE_SECONDS):
        self._client = client or httpx.AsyncClient(timeout=10)
        self._api_base = api_base.rstrip("/")
        self._cache_seconds = cache_seconds
        self._cache: Dict[str, Tuple[float, Any]] = {}


    async def _fetch_with_cache(self, endpoint: str) -> Any:
        """GET an endpoint, serving a fresh cache entry or falling back to a stale one on error."""
        cached = self._cache.get(endpoint)
        if cached and time.time() - cached[0] < self._cache_seconds:
            return cached[1]

        try:
            response = await self._client.get(f"{self._api_base}{endpoint}")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            if cached:
                logging.warning("Using stale cache for %s due to fetch error: %s", endpoint, e)
                return cached[1]
            raise ExternalLookupError(f"GW2 API request {endpoint} failed: {e}") from e

        self._cache[endpoint] = (time.time(), data)
        return data


    async def resolve_tier_order(self, specialization_id: int) -> TierOrder:
        """Major trait IDs of a specialization, grouped by tier in display order."""
        spec = await self._fetch_with_cache(f"/specializations/{specialization_id}")
        major_traits = spec.get("major_traits") if isinstance(spec, dict) else None
        if not major_traits:
            raise ExternalLookupError(f"Specialization {specialization_id} has no major traits")

        traits = await self._fetch_with_cache(f"/traits?ids={','.join(str(t) for t in major_traits)}")
        if not isinstance(traits, list):
            raise ExternalLookupError(f"Unexpected trait data for specialization {specialization_id}")
        majors = [t for t in traits if isinstance(t, dict) and t.get("id") in major_traits]
        return group_by_tier(majors)


    def clear_cache(self):
        """Forget all cached responses."""
        self._cache.clear()


    async def aclose(self):
        await self._client.aclose()
