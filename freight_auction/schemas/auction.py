"""Pydantic schemas for Auction resources"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from freight_auction.models import AuctionStatus, VehicleType
from freight_auction.schemas.bid import BidResponse


class AuctionCreate(BaseModel):
    # Length and duration rules are enforced by AuctionService so that
    # clients always get InvalidFields/InvalidDuration kinds back.
    title: str
    description: str
    vehicle_type: str
    start_time: datetime
    end_time: datetime
    consignment_date: datetime


class AuctionCreatedResponse(BaseModel):
    auction_id: str


class AuctionResponse(BaseModel):
    id: str
    title: str
    description: str
    vehicle_type: VehicleType
    start_time: datetime
    end_time: datetime
    consignment_date: datetime
    status: AuctionStatus
    created_by: str
    winner_id: Optional[str] = None
    winning_bid_id: Optional[str] = None
    bid_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuctionSummary(AuctionResponse):
    lowest_bid: Optional[Decimal] = None


class AuctionListResponse(BaseModel):
    auctions: List[AuctionSummary]
    total: int


class AuctionDetailsResponse(BaseModel):
    auction: AuctionResponse
    bids: List[BidResponse] = Field(default_factory=list)


class CancelAuctionResponse(BaseModel):
    auction_id: str
    status: AuctionStatus


class CloseAuctionResponse(BaseModel):
    closed: bool
    status: AuctionStatus
    winner_id: Optional[str] = None
    winning_bid_id: Optional[str] = None
    winning_amount: Optional[Decimal] = None
