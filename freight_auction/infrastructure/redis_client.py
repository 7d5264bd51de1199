"""
Redis Connection
"""
import logging
from typing import Optional

import redis

from freight_auction.core.config import get_settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> redis.Redis:
    """Get Redis client (singleton)"""
    global _redis_client

    if _redis_client is None:
        settings = get_settings()
        _redis_client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=1.0,
            socket_connect_timeout=1.0,
        )

    return _redis_client


def test_redis_connection(client: Optional[redis.Redis] = None) -> bool:
    """Test Redis connection"""
    try:
        (client or get_redis_client()).ping()
        return True
    except redis.RedisError as e:
        logger.warning(f"❌ Redis connection failed: {e}")
        return False


def close_redis_client():
    """Close the singleton client, if one was created"""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None
        logger.info("🔴 Redis connection closed")
