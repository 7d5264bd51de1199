"""
FastAPI Dependencies

Process-wide service singletons, built lazily from settings. Tests replace
them through ``app.dependency_overrides``.
"""
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import Optional

from fastapi import Header

from freight_auction.core.config import get_settings
from freight_auction.core.errors import UnauthorizedError
from freight_auction.core.retry import RetryConfig
from freight_auction.infrastructure.cache import AuctionDetailsCache
from freight_auction.infrastructure.database import get_session_factory
from freight_auction.infrastructure.ledger import LedgerStore
from freight_auction.infrastructure.push import ExpoPushTransport
from freight_auction.infrastructure.redis_client import get_redis_client
from freight_auction.services import (
    AuctionService,
    BidService,
    ExpirationScheduler,
    NotificationDispatcher,
    ProfileDirectory,
)


@lru_cache()
def get_ledger() -> LedgerStore:
    """Get the ledger store"""
    settings = get_settings()
    retry_config = RetryConfig(
        max_retries=settings.TX_MAX_RETRIES,
        initial_delay=settings.TX_RETRY_INITIAL_DELAY,
        max_delay=settings.TX_RETRY_MAX_DELAY,
    )
    return LedgerStore(get_session_factory(), retry_config=retry_config)


@lru_cache()
def get_cache() -> Optional[AuctionDetailsCache]:
    """Get the auction details cache (None when caching is disabled)"""
    settings = get_settings()
    if not settings.CACHE_ENABLED:
        return None
    return AuctionDetailsCache(get_redis_client(), ttl=settings.CACHE_TTL)


@lru_cache()
def get_profiles() -> ProfileDirectory:
    return ProfileDirectory(get_ledger())


@lru_cache()
def get_dispatcher() -> NotificationDispatcher:
    """Get the notification dispatcher with its push delivery pool"""
    settings = get_settings()
    transport = None
    executor = None
    if settings.PUSH_ENABLED:
        transport = ExpoPushTransport(settings.PUSH_API_URL, timeout=settings.PUSH_TIMEOUT_SECONDS)
        executor = ThreadPoolExecutor(max_workers=settings.PUSH_WORKERS, thread_name_prefix="push")
    return NotificationDispatcher(get_ledger(), transport=transport, executor=executor)


@lru_cache()
def get_auction_service() -> AuctionService:
    return AuctionService(get_ledger(), get_profiles(), dispatcher=get_dispatcher(), cache=get_cache())


@lru_cache()
def get_bid_service() -> BidService:
    return BidService(get_ledger(), get_profiles(), dispatcher=get_dispatcher(), cache=get_cache())


@lru_cache()
def get_scheduler() -> ExpirationScheduler:
    """Get the expiration scheduler"""
    settings = get_settings()
    return ExpirationScheduler(
        get_ledger(),
        get_auction_service(),
        dispatcher=get_dispatcher(),
        interval_seconds=settings.SCHEDULER_INTERVAL_SECONDS,
        maintenance_interval_seconds=settings.MAINTENANCE_INTERVAL_SECONDS,
        retention_days=settings.NOTIFICATION_RETENTION_DAYS,
    )


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id", description="Caller profile id"),
) -> str:
    """Caller identity, as established by the authentication gateway"""
    if not x_user_id:
        raise UnauthorizedError("Missing X-User-Id header")
    return x_user_id
