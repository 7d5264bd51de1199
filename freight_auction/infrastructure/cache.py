"""
Auction details cache

Read-side cache in front of the ledger store. It is never authoritative:
every committed mutation of an auction retires its entry, and any Redis
failure degrades to a cache miss.
"""
import json
import logging
from enum import Enum
from typing import Any, Dict, Optional

import redis

logger = logging.getLogger(__name__)


class EnumEncoder(json.JSONEncoder):
    """JSON encoder that stores enum values rather than member names"""

    def default(self, obj):
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


class AuctionDetailsCache:
    """
    Caches ``GetAuctionDetails`` payloads under ``auction:details:{id}``

    Each auction also has a generation counter under
    ``auction:details:{id}:gen``. ``invalidate`` bumps it, and a payload is
    only served while its stored generation matches the counter. A fill
    that read the store before a concurrent mutation committed therefore
    never outlives that mutation's invalidation.
    """

    KEY_PREFIX = "auction:details"
    GENERATION_TTL = 24 * 3600  # seconds

    def __init__(self, redis_client: redis.Redis, ttl: int = 60):
        self.redis = redis_client
        self.ttl = ttl

        # Metrics
        self.hits = 0
        self.misses = 0

    def _make_key(self, auction_id: str) -> str:
        return f"{self.KEY_PREFIX}:{auction_id}"

    def _generation_key(self, auction_id: str) -> str:
        return f"{self.KEY_PREFIX}:{auction_id}:gen"

    def generation(self, auction_id: str) -> Optional[int]:
        """Current generation, read before loading from the store; None on a Redis error"""
        try:
            value = self.redis.get(self._generation_key(auction_id))
        except redis.RedisError as e:
            logger.warning(f"⚠️  Redis GET failed for auction {auction_id}: {e}", extra={"auction_id": auction_id})
            return None
        return int(value) if value else 0

    def get(self, auction_id: str) -> Optional[Dict[str, Any]]:
        """Cached payload, or None on a miss, a stale entry or a Redis error"""
        try:
            cached, current = self.redis.mget(self._make_key(auction_id), self._generation_key(auction_id))
        except redis.RedisError as e:
            logger.warning(f"⚠️  Redis GET failed for auction {auction_id}: {e}", extra={"auction_id": auction_id})
            return None

        if not cached:
            self.misses += 1
            return None

        try:
            entry = json.loads(cached)
            generation, details = entry["generation"], entry["details"]
        except (ValueError, KeyError, TypeError):
            logger.warning(f"⚠️  Discarding unreadable cache entry for auction {auction_id}")
            self.invalidate(auction_id)
            return None

        if generation != (int(current) if current else 0):
            self.misses += 1
            return None

        self.hits += 1
        return details

    def set(self, auction_id: str, payload: Dict[str, Any], generation: int) -> bool:
        """Store a payload loaded while the auction was at ``generation``"""
        entry = {"generation": generation, "details": payload}
        try:
            self.redis.setex(
                self._make_key(auction_id),
                self.ttl,
                json.dumps(entry, cls=EnumEncoder, default=str),
            )
            return True
        except redis.RedisError as e:
            logger.warning(f"⚠️  Redis SET failed for auction {auction_id}: {e}", extra={"auction_id": auction_id})
            return False

    def invalidate(self, auction_id: str) -> bool:
        """Retire the cached payload after a committed mutation"""
        generation_key = self._generation_key(auction_id)
        try:
            self.redis.incr(generation_key)
            self.redis.expire(generation_key, self.GENERATION_TTL)
            self.redis.delete(self._make_key(auction_id))
            logger.debug(f"🗑️  Invalidated cache for auction {auction_id}")
            return True
        except redis.RedisError as e:
            logger.warning(f"⚠️  Redis invalidation failed for auction {auction_id}: {e}", extra={"auction_id": auction_id})
            return False

    def get_hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0
