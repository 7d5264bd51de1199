"""
Audit Log Model (append-only)
"""
import uuid

from sqlalchemy import JSON, Column, DateTime, String

from freight_auction.core.clock import utcnow
from freight_auction.models import Base


class AuditLog(Base):
    """Audit trail entry written by every mutating operation"""

    __tablename__ = "auction_audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    auction_id = Column(String(36), nullable=True, index=True)
    user_id = Column(String(36), nullable=True, index=True)
    action = Column(String(50), nullable=False)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<AuditLog(auction_id={self.auction_id}, action='{self.action}')>"
