"""
Public tracking cache.

`GET /track/{tracking_number}` is unauthenticated and the busiest read in
the system, so its payload is cached in Redis as JSON. Every committed
status change invalidates the entry.

Each entry is stamped with the parcel version it was built from. A reader
passes the current version and anything older is treated as a miss, so a
view written by a reader that raced a transition is never served.

Redis is an optimisation only: any Redis error is logged and the caller
falls back to the database.
"""

import json
import logging
from typing import Any, Dict, Optional

from redis.exceptions import RedisError

import sendit.app.core.redis_client as redis_client_module
from sendit.app.core.config import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "sendit:tracking:"


class TrackingCache:

    def __init__(self, ttl_seconds: int = settings.tracking_cache_ttl_seconds):
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key(tracking_number: str) -> str:
        return f"{KEY_PREFIX}{tracking_number.upper()}"

    @property
    def client(self):
        # Resolved per call so the client can be swapped in tests
        return redis_client_module.redis_client

    async def get(self, tracking_number: str, version: int) -> Optional[Dict[str, Any]]:
        try:
            raw = await self.client.get(self.key(tracking_number))
        except (RedisError, OSError) as exc:
            logger.warning("Tracking cache read failed for %s: %s", tracking_number, exc)
            return None
        if raw is None:
            return None
        entry = json.loads(raw)
        if entry.get("version") != version:
            logger.debug("Stale tracking cache entry for %s", tracking_number)
            return None
        return entry["view"]

    async def set(self, tracking_number: str, version: int, view: Dict[str, Any]) -> None:
        entry = {"version": version, "view": view}
        try:
            await self.client.set(self.key(tracking_number), json.dumps(entry), ex=self.ttl_seconds)
        except (RedisError, OSError) as exc:
            logger.warning("Tracking cache write failed for %s: %s", tracking_number, exc)

    async def invalidate(self, tracking_number: str) -> None:
        try:
            await self.client.delete(self.key(tracking_number))
        except (RedisError, OSError) as exc:
            # Entry expires on its own after the TTL
            logger.error("Tracking cache invalidation failed for %s: %s", tracking_number, exc)


tracking_cache = TrackingCache()
