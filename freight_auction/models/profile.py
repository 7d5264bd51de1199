"""
Profile Model

Owned by the authentication collaborator; the engine only reads role,
vehicle type and push token.
"""
import uuid

from sqlalchemy import Column, DateTime, Enum as SQLEnum, String

from freight_auction.core.clock import utcnow
from freight_auction.models import Base
from freight_auction.models.enums import Role, VehicleType, enum_values


class Profile(Base):
    """Profile database model"""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username = Column(String(50), nullable=False, unique=True)
    role = Column(
        SQLEnum(Role, native_enum=False, length=20, values_callable=enum_values),
        nullable=False,
        index=True,
    )
    vehicle_type = Column(
        SQLEnum(VehicleType, native_enum=False, length=20, values_callable=enum_values),
        nullable=True,
        index=True,
    )
    push_token = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Profile(id={self.id}, username='{self.username}', role='{self.role.value}')>"
