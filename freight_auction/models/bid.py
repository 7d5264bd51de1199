"""
Bid Model
"""
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
)

from freight_auction.core.clock import utcnow
from freight_auction.models import Base


class Bid(Base):
    """Bid database model"""

    __tablename__ = "auction_bids"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    auction_id = Column(
        String(36),
        ForeignKey("auctions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    is_winning_bid = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("auction_id", "user_id", "amount", name="uq_auction_bids_auction_user_amount"),
        CheckConstraint("amount > 0", name="ck_auction_bids_amount_positive"),
    )

    def __repr__(self):
        return f"<Bid(id={self.id}, auction_id={self.auction_id}, amount={self.amount})>"

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "auction_id": self.auction_id,
            "user_id": self.user_id,
            "amount": str(self.amount),
            "is_winning_bid": self.is_winning_bid,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
