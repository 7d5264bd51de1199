"""
Auction Service - Business Logic

Handles:
- Auction creation (role, field and duration validation)
- Auction cancellation by its consigner
- Auction close, manual or from the expiration scheduler
- Auction queries (details through the read cache, listings)

State machine: ACTIVE -> CANCELLED, ACTIVE -> COMPLETED. Both are terminal.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select

from freight_auction.core import metrics
from freight_auction.core.clock import Clock, to_naive_utc, utcnow
from freight_auction.core.errors import (
    AuctionNotActiveError,
    AuctionNotFoundError,
    InvalidDurationError,
    InvalidFieldsError,
    RoleForbiddenError,
    UnauthorizedError,
)
from freight_auction.infrastructure.cache import AuctionDetailsCache
from freight_auction.infrastructure.ledger import LedgerStore
from freight_auction.models import Auction, AuctionStatus, Bid, Role, VehicleType
from freight_auction.models.auction import MAX_AUCTION_DURATION, MIN_AUCTION_DURATION
from freight_auction.services import events
from freight_auction.services.events import AuctionEvent, distinct_users
from freight_auction.services.notification_dispatcher import NotificationDispatcher
from freight_auction.services.profiles import ProfileDirectory
from freight_auction.services.winner import apply_winning_flags, resolve_winner

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500

TRIGGER_MANUAL = "manual"
TRIGGER_SCHEDULER = "scheduler"


@dataclass
class CloseResult:
    closed: bool  # False when another caller already closed/cancelled it
    status: AuctionStatus
    winner_id: Optional[str]
    winning_bid_id: Optional[str]
    winning_amount: Optional[Decimal]


def _clean_text(value, field: str, max_length: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidFieldsError(f"{field} is required")
    value = value.strip()
    if len(value) > max_length:
        raise InvalidFieldsError(f"{field} must be at most {max_length} characters")
    return value


def _require_datetime(value, field: str) -> datetime:
    if not isinstance(value, datetime):
        raise InvalidFieldsError(f"{field} must be a date and time")
    return to_naive_utc(value)


class AuctionService:
    """
    Service for auction-related business logic

    Centralizes auction operations so they can be:
    - Reused by the HTTP routes and the expiration scheduler
    - Tested without the web layer
    """

    def __init__(
        self,
        ledger: LedgerStore,
        profiles: ProfileDirectory,
        dispatcher: Optional[NotificationDispatcher] = None,
        cache: Optional[AuctionDetailsCache] = None,
        clock: Clock = utcnow,
    ):
        self.ledger = ledger
        self.profiles = profiles
        self.dispatcher = dispatcher
        self.cache = cache
        self.clock = clock

    # ========================================================================
    # CREATE
    # ========================================================================

    def create_auction(
        self,
        title: str,
        description: str,
        vehicle_type,
        start_time: datetime,
        end_time: datetime,
        consignment_date: datetime,
        created_by: str,
    ) -> Auction:
        """
        Create a new auction

        Business rules:
        - Only consigners create auctions
        - Title 1-100 characters, description 1-500 characters
        - end_time - start_time between 5 minutes and 7 days

        Drivers whose vehicle type matches (or who have none recorded) are
        told about the new auction.

        Raises:
            RoleForbiddenError, InvalidFieldsError, InvalidDurationError
        """
        if self.profiles.get_role(created_by) != Role.CONSIGNER:
            raise RoleForbiddenError("Only consigners can create auctions")

        title = _clean_text(title, "Title", MAX_TITLE_LENGTH)
        description = _clean_text(description, "Description", MAX_DESCRIPTION_LENGTH)

        try:
            vehicle = VehicleType(vehicle_type)
        except ValueError:
            raise InvalidFieldsError(f"Unknown vehicle type: {vehicle_type}")

        start = _require_datetime(start_time, "Start time")
        end = _require_datetime(end_time, "End time")
        consignment = _require_datetime(consignment_date, "Consignment date")

        duration = end - start
        if duration < MIN_AUCTION_DURATION:
            raise InvalidDurationError("Auction must run for at least 5 minutes")
        if duration > MAX_AUCTION_DURATION:
            raise InvalidDurationError("Auction cannot run for more than 7 days")

        def work(db) -> Auction:
            now = self.clock()
            auction = Auction(
                title=title,
                description=description,
                vehicle_type=vehicle,
                start_time=start,
                end_time=end,
                consignment_date=consignment,
                status=AuctionStatus.ACTIVE,
                created_by=created_by,
                bid_count=0,
                created_at=now,
                updated_at=now,
            )
            db.add(auction)
            db.flush()
            self.ledger.append_audit(
                db,
                auction.id,
                created_by,
                "auction_created",
                {"title": title, "vehicle_type": vehicle.value, "end_time": end.isoformat()},
                now=now,
            )
            return auction

        auction = self.ledger.transaction(work, operation="create_auction")

        metrics.auctions_created_total.labels(vehicle_type=vehicle.value).inc()
        logger.info(
            f"✅ Created auction {auction.id}: {auction.title}",
            extra={"auction_id": auction.id, "user_id": created_by},
        )

        if self.dispatcher is not None:
            drivers = self.profiles.driver_ids_for_vehicle(vehicle)
            self.dispatcher.dispatch(
                events.auction_created(driver_id, auction.id, auction.title, vehicle.value)
                for driver_id in drivers
            )

        return auction

    # ========================================================================
    # CANCEL
    # ========================================================================

    def cancel_auction(self, auction_id: str, user_id: str) -> Auction:
        """
        Cancel an active auction

        A second cancel (or a cancel after close) fails with
        AuctionNotActiveError so client bugs surface.

        Raises:
            AuctionNotFoundError, UnauthorizedError, AuctionNotActiveError
        """
        def work(db) -> Tuple[Auction, List[AuctionEvent]]:
            now = self.clock()

            auction = self.ledger.lock_auction(db, auction_id)
            if auction is None:
                raise AuctionNotFoundError(f"Auction {auction_id} not found")
            if auction.created_by != user_id:
                raise UnauthorizedError("Only the auction creator can cancel it")
            if not auction.is_active:
                raise AuctionNotActiveError(f"Auction is already {auction.status.value}")

            bids = self.ledger.list_bids(db, auction_id)

            auction.status = AuctionStatus.CANCELLED
            auction.updated_at = now

            self.ledger.append_audit(
                db,
                auction_id,
                user_id,
                "auction_cancelled",
                {"bid_count": len(bids)},
                now=now,
            )

            bidders = distinct_users([bid.user_id for bid in sorted(bids, key=lambda b: (b.created_at, b.id))])
            raised = [events.auction_cancelled(bidder, auction_id, auction.title) for bidder in bidders]
            return auction, raised

        auction, raised = self.ledger.transaction(work, operation="cancel_auction")

        metrics.auctions_cancelled_total.inc()
        logger.info(
            f"❌ Auction {auction_id} cancelled ({len(raised)} bidders notified)",
            extra={"auction_id": auction_id, "user_id": user_id},
        )

        self._after_commit(auction_id, raised)
        return auction

    # ========================================================================
    # CLOSE
    # ========================================================================

    def close_auction(
        self,
        auction_id: str,
        user_id: Optional[str] = None,
        trigger: str = TRIGGER_MANUAL,
    ) -> CloseResult:
        """
        Close an auction and settle its winner

        ``user_id=None`` is the system identity used by the expiration
        scheduler. A user closing manually must be the consigner who
        created the auction; they may close it before end_time.

        Only the first caller that sees the auction ACTIVE performs the
        transition. Any later or concurrent caller gets ``closed=False``
        together with the settled winner fields, not an error.

        Raises:
            AuctionNotFoundError, RoleForbiddenError, UnauthorizedError
        """
        if user_id is not None and self.profiles.get_role(user_id) != Role.CONSIGNER:
            raise RoleForbiddenError("Only consigners can close auctions")

        started = time.perf_counter()

        def work(db) -> Tuple[CloseResult, List[AuctionEvent]]:
            now = self.clock()

            auction = self.ledger.lock_auction(db, auction_id)
            if auction is None:
                raise AuctionNotFoundError(f"Auction {auction_id} not found")
            if user_id is not None and auction.created_by != user_id:
                raise UnauthorizedError("Only the auction creator can close it")

            if not auction.is_active:
                return self._settled(db, auction), []

            bids = self.ledger.list_bids(db, auction_id)
            winner_id = resolve_winner(bids)
            apply_winning_flags(bids, winner_id)
            winner = next((b for b in bids if b.id == winner_id), None)

            auction.status = AuctionStatus.COMPLETED
            auction.winner_id = winner.user_id if winner else None
            auction.winning_bid_id = winner.id if winner else None
            auction.updated_at = now

            self.ledger.append_audit(
                db,
                auction_id,
                user_id,
                "auction_closed",
                {
                    "trigger": trigger,
                    "winner_id": auction.winner_id,
                    "winning_bid_id": auction.winning_bid_id,
                    "winning_amount": str(winner.amount) if winner else None,
                    "bid_count": len(bids),
                },
                now=now,
            )

            raised: List[AuctionEvent] = []
            if winner is not None:
                raised.append(events.auction_won(winner.user_id, auction_id, auction.title, winner.id, winner.amount))
                losers = distinct_users(
                    [b.user_id for b in sorted(bids, key=lambda b: (b.created_at, b.id)) if b.user_id != winner.user_id]
                )
                raised.extend(events.auction_lost(loser, auction_id, auction.title) for loser in losers)
                raised.append(
                    events.auction_completed(auction.created_by, auction_id, auction.title, winner.user_id, winner.amount)
                )
            else:
                raised.append(events.auction_completed(auction.created_by, auction_id, auction.title))

            result = CloseResult(
                closed=True,
                status=auction.status,
                winner_id=auction.winner_id,
                winning_bid_id=auction.winning_bid_id,
                winning_amount=winner.amount if winner else None,
            )
            return result, raised

        result, raised = self.ledger.transaction(work, operation="close_auction")

        if not result.closed:
            logger.info(
                f"ℹ️  Auction {auction_id} already {result.status.value}; close is a no-op",
                extra={"auction_id": auction_id},
            )
            return result

        metrics.record_auction_closed(trigger, result.winner_id is not None)
        if result.winner_id:
            message = f"🏆 Auction {auction_id} closed, winner {result.winner_id} at ₹{result.winning_amount}"
        else:
            message = f"🏁 Auction {auction_id} closed with no bids"
        logger.info(
            message,
            extra={
                "auction_id": auction_id,
                "user_id": user_id,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )

        self._after_commit(auction_id, raised)
        return result

    def _settled(self, db, auction: Auction) -> CloseResult:
        amount = None
        if auction.winning_bid_id is not None:
            winning_bid = self.ledger.get_bid(db, auction.winning_bid_id)
            amount = winning_bid.amount if winning_bid is not None else None
        return CloseResult(
            closed=False,
            status=auction.status,
            winner_id=auction.winner_id,
            winning_bid_id=auction.winning_bid_id,
            winning_amount=amount,
        )

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_auction_details(self, auction_id: str) -> Dict[str, Any]:
        """
        Auction with its bids (cheapest first)

        Served from the read cache when possible; the cache is filled on a
        miss and dropped after every committed mutation.

        Raises:
            AuctionNotFoundError
        """
        generation = None
        if self.cache is not None:
            cached = self.cache.get(auction_id)
            if cached is not None:
                return cached
            generation = self.cache.generation(auction_id)

        with self.ledger.session() as db:
            auction = self.ledger.get_auction(db, auction_id)
            if auction is None:
                raise AuctionNotFoundError(f"Auction {auction_id} not found")
            details = {
                "auction": auction.to_dict(),
                "bids": [bid.to_dict() for bid in self.ledger.list_bids(db, auction_id)],
            }

        if generation is not None:
            self.cache.set(auction_id, details, generation)

        return details

    def list_auctions(
        self,
        status: Optional[AuctionStatus] = None,
        vehicle_type: Optional[VehicleType] = None,
        created_by: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        List auctions with their bid count and lowest bid

        Active auctions come soonest-ending first; otherwise newest first.
        """
        lowest = (
            select(Bid.auction_id, func.min(Bid.amount).label("lowest_bid"))
            .group_by(Bid.auction_id)
            .subquery()
        )
        query = select(Auction, lowest.c.lowest_bid).outerjoin(lowest, lowest.c.auction_id == Auction.id)

        if status is not None:
            query = query.where(Auction.status == status)
        if vehicle_type is not None:
            query = query.where(Auction.vehicle_type == vehicle_type)
        if created_by is not None:
            query = query.where(Auction.created_by == created_by)

        if status == AuctionStatus.ACTIVE:
            query = query.order_by(Auction.end_time.asc(), Auction.id.asc())
        else:
            query = query.order_by(Auction.created_at.desc(), Auction.id.asc())

        query = query.limit(limit).offset(offset)

        with self.ledger.session() as db:
            rows = db.execute(query).all()

        result = []
        for auction, lowest_bid in rows:
            data = auction.to_dict()
            data["lowest_bid"] = str(Decimal(lowest_bid).quantize(Decimal("0.01"))) if lowest_bid is not None else None
            result.append(data)
        return result

    def _after_commit(self, auction_id: str, raised: List[AuctionEvent]):
        if self.cache is not None:
            self.cache.invalidate(auction_id)
        if self.dispatcher is not None and raised:
            self.dispatcher.dispatch(raised)
