"""
Auction Model
"""
import uuid
from datetime import timedelta

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from freight_auction.core.clock import utcnow
from freight_auction.models import Base
from freight_auction.models.enums import AuctionStatus, VehicleType, enum_values

MIN_AUCTION_DURATION = timedelta(minutes=5)
MAX_AUCTION_DURATION = timedelta(days=7)


class Auction(Base):
    """Auction database model

    ``version`` is an optimistic-concurrency counter: every ORM update of the
    row is issued as ``UPDATE ... WHERE version = :seen`` and fails with
    StaleDataError if another transaction committed first.
    """

    __tablename__ = "auctions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    vehicle_type = Column(
        SQLEnum(VehicleType, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        index=True,
    )
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    consignment_date = Column(DateTime, nullable=False)
    status = Column(
        SQLEnum(AuctionStatus, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        default=AuctionStatus.ACTIVE,
        index=True,
    )
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    winner_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    winning_bid_id = Column(String(36), nullable=True)
    bid_count = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_auctions_end_after_start"),
        Index("ix_auctions_status_end_time", "status", "end_time"),
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Auction(id={self.id}, title='{self.title}', status='{self.status.value}')>"

    @property
    def is_active(self) -> bool:
        return self.status == AuctionStatus.ACTIVE

    def has_elapsed(self, now) -> bool:
        """Whether the bidding window is over"""
        return self.end_time <= now

    def to_dict(self):
        """Convert to dictionary"""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "vehicle_type": self.vehicle_type.value,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "consignment_date": self.consignment_date.isoformat(),
            "status": self.status.value,
            "created_by": self.created_by,
            "winner_id": self.winner_id,
            "winning_bid_id": self.winning_bid_id,
            "bid_count": self.bid_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
