"""
Closed value sets shared by models, schemas and services
"""
import enum


class Role(str, enum.Enum):
    """Profile role (immutable after sign-up)"""
    CONSIGNER = "consigner"
    DRIVER = "driver"


class VehicleType(str, enum.Enum):
    """Vehicle classes a job can require"""
    THREE_WHEELER = "three_wheeler"
    PICKUP_TRUCK = "pickup_truck"
    MINI_TRUCK = "mini_truck"
    MEDIUM_TRUCK = "medium_truck"
    LARGE_TRUCK = "large_truck"


class AuctionStatus(str, enum.Enum):
    """Auction status enum"""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class NotificationType(str, enum.Enum):
    """Notification kinds raised by auction/bid transitions"""
    AUCTION_CREATED = "auction_created"
    BID_PLACED = "bid_placed"
    OUTBID = "outbid"
    AUCTION_WON = "auction_won"
    AUCTION_LOST = "auction_lost"
    AUCTION_CANCELLED = "auction_cancelled"
    BID_CANCELLED = "bid_cancelled"
    AUCTION_COMPLETED = "auction_completed"


def enum_values(enum_cls):
    """Persist enum values (e.g. 'active') rather than member names"""
    return [member.value for member in enum_cls]
