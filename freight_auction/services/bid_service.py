"""
Bid Service - Business Logic

Handles:
- Bid validation (role, amount)
- Bid placement with winner recompute
- Bid cancellation with winner recompute
- BidPlaced / Outbid / BidCancelled events

Every write runs in one ledger transaction that locks the auction row,
re-runs the winner resolver over all bids and bumps the auction version.
Events are dispatched only after that transaction commits.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from freight_auction.core import metrics
from freight_auction.core.clock import Clock, utcnow
from freight_auction.core.errors import (
    AuctionExpiredError,
    AuctionNotActiveError,
    AuctionNotFoundError,
    BidNotFoundError,
    CannotCancelWinningBidError,
    InvalidAmountError,
    RoleForbiddenError,
    SelfBidForbiddenError,
    UnauthorizedError,
)
from freight_auction.infrastructure.cache import AuctionDetailsCache
from freight_auction.infrastructure.ledger import LedgerStore
from freight_auction.models import Bid, Role
from freight_auction.services import events
from freight_auction.services.events import AuctionEvent
from freight_auction.services.notification_dispatcher import NotificationDispatcher
from freight_auction.services.profiles import ProfileDirectory
from freight_auction.services.winner import apply_winning_flags, resolve_winner

logger = logging.getLogger(__name__)

MAX_BID_AMOUNT = Decimal("1000000")
CENT = Decimal("0.01")


@dataclass
class PlaceBidResult:
    bid_id: str
    auction_id: str
    amount: Decimal
    is_winning_bid: bool
    created: bool  # False when an identical bid already existed


@dataclass
class CancelBidResult:
    bid_id: str
    auction_id: str
    winning_bid_id: Optional[str]


def validate_bid_amount(amount) -> Decimal:
    """
    Normalize a bid amount to a two-decimal Decimal

    Raises:
        InvalidAmountError: Not a number, not positive, above the cap, or
            finer than one paisa
    """
    if isinstance(amount, bool):
        raise InvalidAmountError("Bid amount must be a number")

    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmountError(f"Bid amount {amount!r} is not a number")

    if not value.is_finite():
        raise InvalidAmountError("Bid amount must be a finite number")
    if value <= 0:
        raise InvalidAmountError("Bid amount must be greater than 0")
    if value > MAX_BID_AMOUNT:
        raise InvalidAmountError(f"Bid amount cannot exceed ₹{MAX_BID_AMOUNT}")
    if value != value.quantize(CENT):
        raise InvalidAmountError("Bid amount can have at most two decimal places")

    return value.quantize(CENT)


class BidService:
    """
    Service for bid-related business logic

    Stateless apart from its collaborators; safe to share across threads.
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
    # PLACE BID
    # ========================================================================

    def place_bid(self, auction_id: str, user_id: str, amount) -> PlaceBidResult:
        """
        Place a bid on an active auction

        Business rules:
        - Only drivers bid, never on their own auction
        - Auction must be active and its window not yet elapsed
        - Repeating an existing (auction, user, amount) bid is a no-op that
          returns the existing bid

        Returns:
            PlaceBidResult for the new (or already existing) bid

        Raises:
            RoleForbiddenError, InvalidAmountError, AuctionNotFoundError,
            SelfBidForbiddenError, AuctionNotActiveError, AuctionExpiredError
        """
        if self.profiles.get_role(user_id) != Role.DRIVER:
            raise RoleForbiddenError("Only drivers can place bids")

        value = validate_bid_amount(amount)
        started = time.perf_counter()

        def work(db) -> Tuple[PlaceBidResult, List[AuctionEvent]]:
            now = self.clock()

            auction = self.ledger.lock_auction(db, auction_id)
            if auction is None:
                raise AuctionNotFoundError(f"Auction {auction_id} not found")
            if auction.created_by == user_id:
                raise SelfBidForbiddenError("You cannot bid on your own auction")
            if not auction.is_active:
                raise AuctionNotActiveError(f"Auction is {auction.status.value}")
            if auction.has_elapsed(now):
                raise AuctionExpiredError("Auction has ended")

            existing = self.ledger.find_bid(db, auction_id, user_id, value)
            if existing is not None:
                result = PlaceBidResult(
                    bid_id=existing.id,
                    auction_id=auction_id,
                    amount=existing.amount,
                    is_winning_bid=existing.is_winning_bid,
                    created=False,
                )
                return result, []

            bids = self.ledger.list_bids(db, auction_id)
            previous_winner_id = resolve_winner(bids)
            previous_winner = next((b for b in bids if b.id == previous_winner_id), None)

            bid = Bid(
                id=str(uuid.uuid4()),
                auction_id=auction_id,
                user_id=user_id,
                amount=value,
                is_winning_bid=False,
                created_at=now,
            )
            db.add(bid)
            bids.append(bid)

            winner_id = resolve_winner(bids)
            apply_winning_flags(bids, winner_id)
            winner = next(b for b in bids if b.id == winner_id)

            auction.bid_count = (auction.bid_count or 0) + 1
            auction.updated_at = now

            self.ledger.append_audit(
                db,
                auction_id,
                user_id,
                "bid_placed",
                {"bid_id": bid.id, "amount": str(value), "is_winning_bid": bid.is_winning_bid},
                now=now,
            )
            db.flush()

            raised = [events.bid_placed(auction.created_by, auction_id, auction.title, bid.id, value)]
            if previous_winner is not None and previous_winner.user_id != winner.user_id:
                raised.append(events.outbid(previous_winner.user_id, auction_id, auction.title, winner.amount))

            result = PlaceBidResult(
                bid_id=bid.id,
                auction_id=auction_id,
                amount=value,
                is_winning_bid=bid.is_winning_bid,
                created=True,
            )
            return result, raised

        result, raised = self.ledger.transaction(work, operation="place_bid")

        if not result.created:
            logger.info(
                f"♻️  Duplicate bid ₹{value} on auction {auction_id}; returning existing bid",
                extra={"auction_id": auction_id, "bid_id": result.bid_id, "user_id": user_id},
            )
            return result

        metrics.bids_placed_total.inc()
        logger.info(
            f"✅ Bid ₹{value} placed on auction {auction_id}"
            f"{' (now winning)' if result.is_winning_bid else ''}",
            extra={
                "auction_id": auction_id,
                "bid_id": result.bid_id,
                "user_id": user_id,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )

        self._after_commit(auction_id, raised)
        return result

    # ========================================================================
    # CANCEL BID
    # ========================================================================

    def cancel_bid(self, bid_id: str, user_id: str) -> CancelBidResult:
        """
        Withdraw one of the caller's bids

        The current winning bid cannot be withdrawn; a leading bidder must
        not be able to manipulate the closing price.

        Raises:
            BidNotFoundError, UnauthorizedError, AuctionNotActiveError,
            CannotCancelWinningBidError
        """
        def work(db) -> Tuple[CancelBidResult, List[AuctionEvent]]:
            now = self.clock()

            bid = self.ledger.get_bid(db, bid_id)
            if bid is None:
                raise BidNotFoundError(f"Bid {bid_id} not found")
            if bid.user_id != user_id:
                raise UnauthorizedError("You can only cancel your own bids")

            auction = self.ledger.lock_auction(db, bid.auction_id)
            if auction is None:
                raise BidNotFoundError(f"Bid {bid_id} not found")
            if not auction.is_active:
                raise AuctionNotActiveError(f"Auction is {auction.status.value}")

            # A concurrent cancel may have removed the bid while we waited for the lock
            bids = self.ledger.list_bids(db, auction.id)
            if bid.id not in {b.id for b in bids}:
                raise BidNotFoundError(f"Bid {bid_id} not found")
            if resolve_winner(bids) == bid.id:
                raise CannotCancelWinningBidError("The current winning bid cannot be cancelled")

            amount = bid.amount
            db.delete(bid)
            remaining = [b for b in bids if b.id != bid.id]
            winner_id = resolve_winner(remaining)
            apply_winning_flags(remaining, winner_id)

            auction.bid_count = max((auction.bid_count or 0) - 1, 0)
            auction.updated_at = now

            self.ledger.append_audit(
                db,
                auction.id,
                user_id,
                "bid_cancelled",
                {"bid_id": bid_id, "amount": str(amount)},
                now=now,
            )
            db.flush()

            raised = [events.bid_cancelled(auction.created_by, auction.id, auction.title, bid_id, amount)]
            return CancelBidResult(bid_id=bid_id, auction_id=auction.id, winning_bid_id=winner_id), raised

        result, raised = self.ledger.transaction(work, operation="cancel_bid")

        metrics.bids_cancelled_total.inc()
        logger.info(
            f"🗑️  Bid {bid_id} cancelled on auction {result.auction_id}",
            extra={"auction_id": result.auction_id, "bid_id": bid_id, "user_id": user_id},
        )

        self._after_commit(result.auction_id, raised)
        return result

    def _after_commit(self, auction_id: str, raised: List[AuctionEvent]):
        if self.cache is not None:
            self.cache.invalidate(auction_id)
        if self.dispatcher is not None and raised:
            self.dispatcher.dispatch(raised)
