"""
Profile Directory

Read-only view of the authentication collaborator's ``profiles`` table.
Role and vehicle type are consulted synchronously for authorization and
for targeting AuctionCreated notifications.
"""
from typing import List, Optional

from sqlalchemy import or_, select

from freight_auction.infrastructure.ledger import LedgerStore
from freight_auction.models import Profile, Role, VehicleType


class ProfileDirectory:
    """Looks up roles and vehicle types"""

    def __init__(self, ledger: LedgerStore):
        self.ledger = ledger

    def get_role(self, user_id: str) -> Optional[Role]:
        """Role of the user, or None for an unknown user"""
        with self.ledger.session() as db:
            return db.execute(
                select(Profile.role).where(Profile.id == user_id)
            ).scalar_one_or_none()

    def get_vehicle_type(self, user_id: str) -> Optional[VehicleType]:
        with self.ledger.session() as db:
            return db.execute(
                select(Profile.vehicle_type).where(Profile.id == user_id)
            ).scalar_one_or_none()

    def driver_ids_for_vehicle(self, vehicle_type: VehicleType) -> List[str]:
        """
        Drivers to tell about a new auction

        Drivers with no vehicle type recorded are included so older
        profiles keep receiving every auction.
        """
        query = (
            select(Profile.id)
            .where(
                Profile.role == Role.DRIVER,
                or_(Profile.vehicle_type == vehicle_type, Profile.vehicle_type.is_(None)),
            )
            .order_by(Profile.created_at.asc())
        )
        with self.ledger.session() as db:
            return list(db.execute(query).scalars().all())
