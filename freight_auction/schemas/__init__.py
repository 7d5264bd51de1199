"""
Pydantic schemas for API request/response validation
"""
from freight_auction.schemas.auction import (
    AuctionCreate,
    AuctionCreatedResponse,
    AuctionDetailsResponse,
    AuctionListResponse,
    AuctionResponse,
    AuctionSummary,
    CancelAuctionResponse,
    CloseAuctionResponse,
)
from freight_auction.schemas.bid import BidCreate, BidResponse, CancelBidResponse, PlaceBidResponse
from freight_auction.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
)

__all__ = [
    # Auctions
    "AuctionCreate",
    "AuctionCreatedResponse",
    "AuctionDetailsResponse",
    "AuctionListResponse",
    "AuctionResponse",
    "AuctionSummary",
    "CancelAuctionResponse",
    "CloseAuctionResponse",
    # Bids
    "BidCreate",
    "BidResponse",
    "CancelBidResponse",
    "PlaceBidResponse",
    # Notifications
    "MarkAllReadResponse",
    "NotificationListResponse",
    "NotificationResponse",
]
