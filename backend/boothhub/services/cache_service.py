"""
Read-through Redis cache for listing endpoints.

Each ListingCache owns one key namespace ("<namespace>:<query params>").
Writes to the underlying rows call invalidate(), which SCANs the namespace
and drops every page; REDIS_CACHE_TTL bounds staleness if that is missed.

Only the exhibition-event listing is cached. Booths, reservations and
floor-plan SVGs are always rendered from the database, which is where
exclusivity is decided.
"""

import json
from typing import Any, Optional

from boothhub.core.config import get_settings
from boothhub.core.logging import get_logger
from boothhub.core.metrics import record_cache_operation
from boothhub.infrastructure.redis_client import get_redis

logger = get_logger(__name__)
settings = get_settings()


class ListingCache:
    def __init__(self, namespace: str, ttl: Optional[int] = None):
        self.namespace = namespace
        self.ttl = ttl or settings.REDIS_CACHE_TTL

    def key(self, **params: Any) -> str:
        parts = "&".join(f"{name}={'any' if value is None else value}" for name, value in sorted(params.items()))
        return f"{self.namespace}:{parts}"

    async def get(self, **params: Any) -> Optional[dict]:
        client = await get_redis()
        if not client:
            return None

        key = self.key(**params)
        try:
            raw = await client.get(key)
        except Exception as e:
            logger.error("cache_get_failed", key=key, error=str(e))
            return None

        record_cache_operation(self.namespace, hit=raw is not None)
        return json.loads(raw) if raw else None

    async def set(self, data: dict, **params: Any) -> None:
        client = await get_redis()
        if not client:
            return

        key = self.key(**params)
        try:
            await client.setex(key, self.ttl, json.dumps(data, default=str))
        except Exception as e:
            logger.error("cache_set_failed", key=key, error=str(e))

    async def invalidate(self) -> int:
        client = await get_redis()
        if not client:
            return 0

        deleted = 0
        try:
            async for key in client.scan_iter(match=f"{self.namespace}:*", count=100):
                deleted += await client.delete(key)
        except Exception as e:
            logger.error("cache_invalidate_failed", namespace=self.namespace, error=str(e))
        else:
            logger.info("cache_invalidated", namespace=self.namespace, keys_deleted=deleted)
        return deleted


event_listings = ListingCache("events:list")


async def cache_health() -> dict:
    """Redis keyspace stats for /health."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except Exception as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hitRate": round(hits / max(hits + misses, 1) * 100, 2),
    }
