"""
Notification Model
"""
import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, String, Text

from freight_auction.core.clock import utcnow
from freight_auction.models import Base
from freight_auction.models.enums import NotificationType, enum_values


class Notification(Base):
    """Notification database model

    Rows are only written by the notification dispatcher; ``is_read`` is the
    single mutable column.
    """

    __tablename__ = "auction_notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    auction_id = Column(String(36), ForeignKey("auctions.id", ondelete="CASCADE"), nullable=True, index=True)
    type = Column(
        SQLEnum(NotificationType, native_enum=False, length=30, values_callable=enum_values),
        nullable=False,
    )
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Notification(id={self.id}, user_id={self.user_id}, type='{self.type.value}')>"
