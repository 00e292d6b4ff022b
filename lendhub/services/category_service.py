"""
Category service - hot, recent and default category lists for clients.
Challenge: Every item form reads these lists; the ledger rows change on every item write.
Design: Short-TTL Redis cache in front of the ledger read views; Redis down means a DB read.
"""

import json
import logging

from lendhub.cache import redis_client
from lendhub.config import get_settings
from lendhub.services.category_ledger import CategoryLedger

logger = logging.getLogger(__name__)

CACHE_PREFIX = "categories:"


class CategoryService:
    def __init__(self, ledger: CategoryLedger, ttl_seconds: int | None = None):
        self.ledger = ledger
        self.ttl_seconds = get_settings().category_cache_ttl if ttl_seconds is None else ttl_seconds

    async def _cached(self, key: str, load) -> list[str]:
        if self.ttl_seconds <= 0:
            return await load()
        cached = await redis_client.cache_get(CACHE_PREFIX + key)
        if cached:
            return json.loads(cached)
        value = await load()
        await redis_client.cache_set(CACHE_PREFIX + key, value, self.ttl_seconds)
        return value

    async def hot_categories(self, limit: int = 20) -> list[str]:
        """Most used categories first."""
        return await self._cached(f"hot:{limit}", lambda: self.ledger.top_by_count(limit))

    async def recent_categories(self, limit: int = 20) -> list[str]:
        """Most recently touched categories first."""
        return await self._cached(f"recent:{limit}", lambda: self.ledger.top_by_recency(limit))

    async def default_categories(self) -> list[str]:
        return await self._cached("default", self.ledger.default_categories)
