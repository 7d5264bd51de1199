"""
Services package exports
"""
from freight_auction.services.auction_service import AuctionService, CloseResult
from freight_auction.services.bid_service import BidService, CancelBidResult, PlaceBidResult
from freight_auction.services.expiration_scheduler import ExpirationScheduler, SweepReport
from freight_auction.services.notification_dispatcher import NotificationDispatcher
from freight_auction.services.profiles import ProfileDirectory
from freight_auction.services.winner import resolve_winner

__all__ = [
    "AuctionService",
    "CloseResult",
    "BidService",
    "PlaceBidResult",
    "CancelBidResult",
    "ExpirationScheduler",
    "SweepReport",
    "NotificationDispatcher",
    "ProfileDirectory",
    "resolve_winner",
]
