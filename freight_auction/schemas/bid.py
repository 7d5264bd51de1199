"""Pydantic schemas for Bid resources"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class BidCreate(BaseModel):
    amount: Decimal


class BidResponse(BaseModel):
    id: str
    auction_id: str
    user_id: str
    amount: Decimal
    is_winning_bid: bool
    created_at: Optional[datetime] = None


class PlaceBidResponse(BaseModel):
    bid_id: str
    is_winning_bid: bool
    created: bool


class CancelBidResponse(BaseModel):
    bid_id: str
    auction_id: str
    cancelled: bool = True
