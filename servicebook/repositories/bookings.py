"""Booking repository - database operations for bookings."""

from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from servicebook.models.bookings import Booking


class BookingRepository:
    """Repository for booking rows. Rows are never deleted."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, booking_id: UUID, for_update: bool = False) -> Optional[Booking]:
        """Booking by id; `for_update` locks the single row"""
        stmt = select(Booking).where(Booking.id == booking_id)
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def list_active_on_date(self, professional_id: UUID, day: date) -> List[Booking]:
        """Non-cancelled bookings of a professional on one date, by start time"""
        stmt = (
            select(Booking)
            .where(
                Booking.professional_id == professional_id,
                Booking.date == day,
                Booking.cancelled_at.is_(None),
            )
            .order_by(Booking.time)
        )
        return list(self.db.execute(stmt).scalars().all())

    def add(self, booking: Booking) -> Booking:
        """Stage a new booking; constraint violations surface on flush"""
        self.db.add(booking)
        self.db.flush()
        return booking

    def list_for_party(
        self,
        customer_id: Optional[UUID] = None,
        professional_id: Optional[UUID] = None,
        status_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Booking], int]:
        """Bookings of a customer or a professional, newest first, with total count"""
        conditions = []
        if customer_id is not None:
            conditions.append(Booking.customer_id == customer_id)
        if professional_id is not None:
            conditions.append(Booking.professional_id == professional_id)
        if status_id is not None:
            conditions.append(Booking.status_id == status_id)

        total = self.db.execute(
            select(func.count()).select_from(Booking).where(*conditions)
        ).scalar_one()

        stmt = (
            select(Booking)
            .where(*conditions)
            .order_by(Booking.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.execute(stmt).scalars().all()), total

    def count_by_status(self) -> List[Tuple[int, int]]:
        """(status_id, count) pairs over all bookings"""
        stmt = select(Booking.status_id, func.count()).group_by(Booking.status_id)
        return [(status_id, count) for status_id, count in self.db.execute(stmt).all()]
