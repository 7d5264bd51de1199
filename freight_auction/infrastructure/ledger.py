"""
Ledger Store

Durable, transactional storage for auctions, bids, notifications and audit
logs. Every read-modify-write runs through ``LedgerStore.transaction``:

- one database transaction per attempt
- the auction row is locked (``SELECT ... FOR UPDATE``) and versioned
- transient conflicts are retried with backoff; callers only see an
  InfrastructureError once retries are exhausted
"""
import logging
import time
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterator, List, Optional, TypeVar

from sqlalchemy import exc as sa_exc
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from freight_auction.core.errors import StoreUnavailableError, TransientConflictError
from freight_auction.core.retry import RetryConfig, RetryExhaustedError, retry_sync
from freight_auction.models import Auction, AuctionStatus, AuditLog, Bid

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL SQLSTATEs: serialization_failure, deadlock_detected, lock_not_available
TRANSIENT_PG_CODES = {"40001", "40P01", "55P03"}

BID_UNIQUE_MARKERS = (
    "uq_auction_bids_auction_user_amount",
    "auction_bids.auction_id, auction_bids.user_id, auction_bids.amount",
)


def _sqlstate(error: sa_exc.DBAPIError) -> Optional[str]:
    orig = error.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_transient_error(error: Exception) -> bool:
    """
    Whether a failed transaction can simply be run again

    - StaleDataError: optimistic version check lost to a concurrent writer
    - serialization / deadlock / lock timeout from PostgreSQL
    - "database is locked" from SQLite
    - a duplicate (auction, user, amount) insert raced by the same bidder;
      the retry takes the dedupe path
    """
    if isinstance(error, StaleDataError):
        return True

    if isinstance(error, sa_exc.IntegrityError):
        message = str(error.orig)
        return any(marker in message for marker in BID_UNIQUE_MARKERS)

    if isinstance(error, sa_exc.DBAPIError):
        if _sqlstate(error) in TRANSIENT_PG_CODES:
            return True
        return "database is locked" in str(error.orig).lower()

    return False


class LedgerStore:
    """
    Transactional access to the auction ledger

    The store holds no mutable state of its own; all sharing happens in the
    database, so one instance can serve every worker thread.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        retry_config: Optional[RetryConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session_factory = session_factory
        self.retry_config = retry_config or RetryConfig()
        self._sleep = sleep

    # ========================================================================
    # TRANSACTIONS
    # ========================================================================

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Plain session for read-only queries"""
        try:
            with self.session_factory() as db:
                yield db
        except (sa_exc.OperationalError, sa_exc.TimeoutError) as e:
            raise StoreUnavailableError(f"Ledger store unavailable: {e}") from e

    def transaction(self, work: Callable[[Session], T], operation: str = "transaction") -> T:
        """
        Run ``work(db)`` inside one atomic transaction, retrying transient conflicts

        ``work`` may be executed more than once, so it must not have side
        effects outside the session. Domain errors raised by ``work`` roll the
        transaction back and propagate unchanged.
        """
        def attempt() -> T:
            with self.session_factory() as db:
                with db.begin():
                    return work(db)

        try:
            return retry_sync(
                attempt,
                config=self.retry_config,
                should_retry=is_transient_error,
                operation=operation,
                sleep=self._sleep,
            )
        except RetryExhaustedError as e:
            raise TransientConflictError(
                f"{operation} kept conflicting with concurrent updates; try again"
            ) from e
        except (sa_exc.OperationalError, sa_exc.TimeoutError) as e:
            raise StoreUnavailableError(f"Ledger store unavailable: {e}") from e

    # ========================================================================
    # ROW ACCESS (call inside a transaction)
    # ========================================================================

    @staticmethod
    def lock_auction(db: Session, auction_id: str) -> Optional[Auction]:
        """Load an auction and lock its row until the transaction ends"""
        query = (
            select(Auction)
            .where(Auction.id == auction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return db.execute(query).scalar_one_or_none()

    @staticmethod
    def get_auction(db: Session, auction_id: str) -> Optional[Auction]:
        return db.get(Auction, auction_id)

    @staticmethod
    def get_bid(db: Session, bid_id: str) -> Optional[Bid]:
        return db.get(Bid, bid_id)

    @staticmethod
    def list_bids(db: Session, auction_id: str) -> List[Bid]:
        """All bids of an auction, cheapest first"""
        query = (
            select(Bid)
            .where(Bid.auction_id == auction_id)
            .order_by(Bid.amount.asc(), Bid.created_at.asc(), Bid.id.asc())
            .execution_options(populate_existing=True)
        )
        return list(db.execute(query).scalars().all())

    @staticmethod
    def find_bid(db: Session, auction_id: str, user_id: str, amount: Decimal) -> Optional[Bid]:
        query = select(Bid).where(
            Bid.auction_id == auction_id,
            Bid.user_id == user_id,
            Bid.amount == amount,
        )
        return db.execute(query).scalar_one_or_none()

    @staticmethod
    def expired_auction_ids(db: Session, now: datetime, limit: Optional[int] = None) -> List[str]:
        """Active auctions whose window has elapsed, oldest deadline first"""
        query = (
            select(Auction.id)
            .where(Auction.status == AuctionStatus.ACTIVE, Auction.end_time <= now)
            .order_by(Auction.end_time.asc())
        )
        if limit:
            query = query.limit(limit)
        return list(db.execute(query).scalars().all())

    @staticmethod
    def append_audit(
        db: Session,
        auction_id: Optional[str],
        user_id: Optional[str],
        action: str,
        details: Optional[dict] = None,
        now: Optional[datetime] = None,
    ) -> AuditLog:
        """Append an audit entry; it commits (or not) with the surrounding transaction"""
        entry = AuditLog(
            auction_id=auction_id,
            user_id=user_id,
            action=action,
            details=details or {},
        )
        if now is not None:
            entry.created_at = now
        db.add(entry)
        return entry
