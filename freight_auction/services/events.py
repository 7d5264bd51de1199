"""
Domain events raised by committed auction/bid transitions

Services collect events while a transaction runs and hand them to the
notification dispatcher only after it commits.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from freight_auction.models import NotificationType

PUSH_TITLES = {
    NotificationType.AUCTION_CREATED: "New auction available! 🚚",
    NotificationType.BID_PLACED: "New bid placed 💰",
    NotificationType.OUTBID: "You've been outbid 📢",
    NotificationType.AUCTION_WON: "Auction Won! 🎉",
    NotificationType.AUCTION_LOST: "Auction ended",
    NotificationType.AUCTION_CANCELLED: "Auction cancelled ❌",
    NotificationType.BID_CANCELLED: "Bid cancelled",
    NotificationType.AUCTION_COMPLETED: "Auction completed ✅",
}


@dataclass(frozen=True)
class AuctionEvent:
    """One notification to raise for one user"""

    user_id: str
    type: NotificationType
    auction_id: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def push_title(self) -> str:
        return PUSH_TITLES.get(self.type, "Freight Auction")


def format_amount(amount: Decimal) -> str:
    return f"₹{amount}"


# ============================================================================
# EVENT BUILDERS
# ============================================================================

def auction_created(user_id: str, auction_id: str, title: str, vehicle_type: str) -> AuctionEvent:
    return AuctionEvent(
        user_id=user_id,
        type=NotificationType.AUCTION_CREATED,
        auction_id=auction_id,
        message=f'A new auction "{title}" needs a {vehicle_type.replace("_", " ")}. Place your bid now!',
        data={"vehicle_type": vehicle_type},
    )


def bid_placed(creator_id: str, auction_id: str, title: str, bid_id: str, amount: Decimal) -> AuctionEvent:
    return AuctionEvent(
        user_id=creator_id,
        type=NotificationType.BID_PLACED,
        auction_id=auction_id,
        message=f'A bid of {format_amount(amount)} was placed on your auction "{title}"',
        data={"bid_id": bid_id, "amount": str(amount)},
    )


def outbid(user_id: str, auction_id: str, title: str, amount: Decimal) -> AuctionEvent:
    return AuctionEvent(
        user_id=user_id,
        type=NotificationType.OUTBID,
        auction_id=auction_id,
        message=f'Someone placed a lower bid ({format_amount(amount)}) on "{title}". Bid again to stay in the race!',
        data={"amount": str(amount)},
    )


def bid_cancelled(creator_id: str, auction_id: str, title: str, bid_id: str, amount: Decimal) -> AuctionEvent:
    return AuctionEvent(
        user_id=creator_id,
        type=NotificationType.BID_CANCELLED,
        auction_id=auction_id,
        message=f'A bid of {format_amount(amount)} was cancelled on your auction "{title}"',
        data={"bid_id": bid_id, "amount": str(amount)},
    )


def auction_cancelled(user_id: str, auction_id: str, title: str) -> AuctionEvent:
    return AuctionEvent(
        user_id=user_id,
        type=NotificationType.AUCTION_CANCELLED,
        auction_id=auction_id,
        message=f'The auction "{title}" has been cancelled by the consigner',
    )


def auction_won(user_id: str, auction_id: str, title: str, bid_id: str, amount: Decimal) -> AuctionEvent:
    return AuctionEvent(
        user_id=user_id,
        type=NotificationType.AUCTION_WON,
        auction_id=auction_id,
        message=f'Congratulations! You won the auction "{title}" with a bid of {format_amount(amount)}',
        data={"bid_id": bid_id, "amount": str(amount)},
    )


def auction_lost(user_id: str, auction_id: str, title: str) -> AuctionEvent:
    return AuctionEvent(
        user_id=user_id,
        type=NotificationType.AUCTION_LOST,
        auction_id=auction_id,
        message=f'The auction "{title}" has ended. Unfortunately, you did not win this time.',
    )


def auction_completed(
    creator_id: str,
    auction_id: str,
    title: str,
    winner_id: Optional[str] = None,
    amount: Optional[Decimal] = None,
) -> AuctionEvent:
    if winner_id is None:
        message = f'Your auction "{title}" has ended with no bids. You may create a new auction.'
        data = {}
    else:
        message = f'Your auction "{title}" has been completed with a winning bid of {format_amount(amount)}'
        data = {"winner_id": winner_id, "amount": str(amount)}

    return AuctionEvent(
        user_id=creator_id,
        type=NotificationType.AUCTION_COMPLETED,
        auction_id=auction_id,
        message=message,
        data=data,
    )


def distinct_users(user_ids: List[str]) -> List[str]:
    """Distinct user ids in first-seen order"""
    return list(dict.fromkeys(user_ids))
