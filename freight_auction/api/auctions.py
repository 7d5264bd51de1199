"""
Auction API Routes
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from freight_auction.core.dependencies import (
    get_auction_service,
    get_bid_service,
    get_current_user_id,
)
from freight_auction.models import AuctionStatus, VehicleType
from freight_auction.schemas import (
    AuctionCreate,
    AuctionCreatedResponse,
    AuctionDetailsResponse,
    AuctionListResponse,
    BidCreate,
    CancelAuctionResponse,
    CloseAuctionResponse,
    PlaceBidResponse,
)
from freight_auction.services import AuctionService, BidService

router = APIRouter(prefix="/auctions", tags=["auctions"])


@router.post("", response_model=AuctionCreatedResponse, status_code=201)
def create_auction(
    request: AuctionCreate,
    user_id: str = Depends(get_current_user_id),
    service: AuctionService = Depends(get_auction_service),
):
    """Create a new auction (consigners only)"""
    auction = service.create_auction(
        title=request.title,
        description=request.description,
        vehicle_type=request.vehicle_type,
        start_time=request.start_time,
        end_time=request.end_time,
        consignment_date=request.consignment_date,
        created_by=user_id,
    )
    return AuctionCreatedResponse(auction_id=auction.id)


@router.get("", response_model=AuctionListResponse)
def list_auctions(
    status: Optional[AuctionStatus] = None,
    vehicle_type: Optional[VehicleType] = None,
    created_by: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: AuctionService = Depends(get_auction_service),
):
    """List auctions with bid count and lowest bid"""
    auctions = service.list_auctions(
        status=status,
        vehicle_type=vehicle_type,
        created_by=created_by,
        limit=limit,
        offset=offset,
    )
    return {"auctions": auctions, "total": len(auctions)}


@router.get("/{auction_id}", response_model=AuctionDetailsResponse)
def get_auction(auction_id: str, service: AuctionService = Depends(get_auction_service)):
    """Auction with its bids - served through the read cache"""
    return service.get_auction_details(auction_id)


@router.post("/{auction_id}/cancel", response_model=CancelAuctionResponse)
def cancel_auction(
    auction_id: str,
    user_id: str = Depends(get_current_user_id),
    service: AuctionService = Depends(get_auction_service),
):
    """Cancel an active auction (creator only)"""
    auction = service.cancel_auction(auction_id, user_id)
    return CancelAuctionResponse(auction_id=auction.id, status=auction.status)


@router.post("/{auction_id}/close", response_model=CloseAuctionResponse)
def close_auction(
    auction_id: str,
    user_id: str = Depends(get_current_user_id),
    service: AuctionService = Depends(get_auction_service),
):
    """
    Close an auction now (creator only)

    Idempotent: closing an auction that is no longer active returns its
    settled state with ``closed = false``.
    """
    result = service.close_auction(auction_id, user_id=user_id)
    return CloseAuctionResponse(
        closed=result.closed,
        status=result.status,
        winner_id=result.winner_id,
        winning_bid_id=result.winning_bid_id,
        winning_amount=result.winning_amount,
    )


@router.post("/{auction_id}/bids", response_model=PlaceBidResponse, status_code=201)
def place_bid(
    auction_id: str,
    request: BidCreate,
    user_id: str = Depends(get_current_user_id),
    service: BidService = Depends(get_bid_service),
):
    """Place a bid (drivers only; lowest bid wins)"""
    result = service.place_bid(auction_id, user_id, request.amount)
    return PlaceBidResponse(
        bid_id=result.bid_id,
        is_winning_bid=result.is_winning_bid,
        created=result.created,
    )
