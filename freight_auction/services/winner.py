"""
Winner Resolver

Reverse auction: the cheapest bid wins. Ties go to the earliest bid, then
to the lowest bid id, so the result never depends on input order.
"""
from typing import Iterable, Optional


def winning_order_key(bid):
    """Sort key putting the winning bid first"""
    return (bid.amount, bid.created_at, bid.id)


def resolve_winner(bids: Iterable) -> Optional[str]:
    """
    Compute the current winning bid id

    Args:
        bids: Objects exposing ``id``, ``amount`` and ``created_at``

    Returns:
        Id of the winning bid, or None when there are no bids
    """
    winner = min(bids, key=winning_order_key, default=None)
    return winner.id if winner is not None else None


def apply_winning_flags(bids: Iterable, winner_id: Optional[str]) -> None:
    """Set ``is_winning_bid`` so exactly the resolved bid (if any) is flagged"""
    for bid in bids:
        flag = bid.id == winner_id
        if bid.is_winning_bid != flag:
            bid.is_winning_bid = flag
