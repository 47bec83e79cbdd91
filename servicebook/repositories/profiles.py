"""Profile repository - read access to users, profiles and the service catalogue."""

from typing import Optional, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from servicebook.models.customers import CustomerProfile
from servicebook.models.professionals import ProfessionalProfile
from servicebook.models.services import Service
from servicebook.models.users import User


class ProfileRepository:
    """Lookups of the externally owned user, profile and service records."""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: UUID) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_customer(self, customer_id: UUID) -> Optional[CustomerProfile]:
        return self.db.get(CustomerProfile, customer_id)

    def get_customer_by_user(self, user_id: UUID) -> Optional[CustomerProfile]:
        """Customer profile of an authenticated user"""
        stmt = select(CustomerProfile).where(CustomerProfile.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_professional(
        self,
        professional_id: UUID,
        active_only: bool = True,
        for_update: bool = False,
    ) -> Optional[ProfessionalProfile]:
        """
        Professional profile by id.

        `for_update` takes a row lock that serialises concurrent bookings
        for the same professional until the surrounding transaction ends.
        """
        stmt = select(ProfessionalProfile).where(ProfessionalProfile.id == professional_id)
        if active_only:
            stmt = stmt.where(ProfessionalProfile.is_active.is_(True))
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_professional_by_user(self, user_id: UUID) -> Optional[ProfessionalProfile]:
        stmt = select(ProfessionalProfile).where(ProfessionalProfile.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_service(self, service_id: int, active_only: bool = True) -> Optional[Service]:
        stmt = select(Service).where(Service.id == service_id)
        if active_only:
            stmt = stmt.where(Service.is_active.is_(True))
        return self.db.execute(stmt).scalar_one_or_none()

    def party_user_ids(self, booking) -> Set[UUID]:
        """User ids of the booking's customer and professional"""
        user_ids = set()
        customer = self.get_customer(booking.customer_id)
        if customer is not None:
            user_ids.add(customer.user_id)
        professional = self.get_professional(booking.professional_id, active_only=False)
        if professional is not None:
            user_ids.add(professional.user_id)
        return user_ids
