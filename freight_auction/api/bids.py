"""
Bid API Routes
"""
from fastapi import APIRouter, Depends

from freight_auction.core.dependencies import get_bid_service, get_current_user_id
from freight_auction.schemas import CancelBidResponse
from freight_auction.services import BidService

router = APIRouter(prefix="/bids", tags=["bids"])


@router.delete("/{bid_id}", response_model=CancelBidResponse)
def cancel_bid(
    bid_id: str,
    user_id: str = Depends(get_current_user_id),
    service: BidService = Depends(get_bid_service),
):
    """Withdraw one of your bids (not allowed while it is winning)"""
    result = service.cancel_bid(bid_id, user_id)
    return CancelBidResponse(bid_id=result.bid_id, auction_id=result.auction_id)
