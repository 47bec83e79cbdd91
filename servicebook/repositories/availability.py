"""Availability repository - database operations for availability windows."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from servicebook.models.availability import Availability


class AvailabilityRepository:
    """Repository for a professional's weekly availability windows."""

    def __init__(self, db: Session):
        self.db = db

    def list_for_professional(
        self,
        professional_id: UUID,
        day: Optional[int] = None,
    ) -> List[Availability]:
        """Windows ordered by day, then start time"""
        stmt = select(Availability).where(Availability.professional_id == professional_id)
        if day is not None:
            stmt = stmt.where(Availability.day == day)
        stmt = stmt.order_by(Availability.day, Availability.from_time)
        return list(self.db.execute(stmt).scalars().all())

    def get(self, availability_id: int, professional_id: Optional[UUID] = None) -> Optional[Availability]:
        """Window by id; restricted to one owner when professional_id is given"""
        stmt = select(Availability).where(Availability.id == availability_id)
        if professional_id is not None:
            stmt = stmt.where(Availability.professional_id == professional_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def add(self, window: Availability) -> Availability:
        self.db.add(window)
        self.db.flush()
        return window

    def delete(self, window: Availability) -> None:
        self.db.delete(window)
        self.db.flush()

    def delete_all_for_professional(self, professional_id: UUID) -> int:
        result = self.db.execute(
            delete(Availability).where(Availability.professional_id == professional_id)
        )
        return result.rowcount or 0
