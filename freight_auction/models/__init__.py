"""
Database Models
"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import models after Base is defined
from freight_auction.models.enums import (  # noqa: E402
    AuctionStatus,
    NotificationType,
    Role,
    VehicleType,
)
from freight_auction.models.profile import Profile  # noqa: E402
from freight_auction.models.auction import Auction  # noqa: E402
from freight_auction.models.bid import Bid  # noqa: E402
from freight_auction.models.notification import Notification  # noqa: E402
from freight_auction.models.audit_log import AuditLog  # noqa: E402

__all__ = [
    "Base",
    "AuctionStatus",
    "NotificationType",
    "Role",
    "VehicleType",
    "Profile",
    "Auction",
    "Bid",
    "Notification",
    "AuditLog",
]
