"""Booking status repositories - status catalogue and status history."""

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from servicebook.models.bookings import Booking, BookingStatus, BookingStatusHistory


class BookingStatusRepository:
    """Repository for the booking status catalogue."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, status_id: int) -> Optional[BookingStatus]:
        return self.db.get(BookingStatus, status_id)

    def get_by_name(self, name: str) -> Optional[BookingStatus]:
        stmt = select(BookingStatus).where(BookingStatus.name == name)
        return self.db.execute(stmt).scalar_one_or_none()

    def list(self, limit: int = 20, offset: int = 0) -> Tuple[List[BookingStatus], int]:
        """Statuses ordered by name, with total count"""
        total = self.db.execute(select(func.count()).select_from(BookingStatus)).scalar_one()
        stmt = select(BookingStatus).order_by(BookingStatus.name).limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all()), total

    def list_all(self) -> List[BookingStatus]:
        stmt = select(BookingStatus).order_by(BookingStatus.id)
        return list(self.db.execute(stmt).scalars().all())

    def add(self, status: BookingStatus) -> BookingStatus:
        self.db.add(status)
        self.db.flush()
        return status

    def delete(self, status: BookingStatus) -> None:
        self.db.delete(status)
        self.db.flush()

    def is_referenced(self, status_id: int) -> bool:
        """True when at least one booking points at the status"""
        stmt = select(Booking.id).where(Booking.status_id == status_id).limit(1)
        return self.db.execute(stmt).first() is not None


class BookingStatusHistoryRepository:
    """Append-only repository for status history rows."""

    def __init__(self, db: Session):
        self.db = db

    def add(self, entry: BookingStatusHistory) -> BookingStatusHistory:
        self.db.add(entry)
        self.db.flush()
        return entry

    def list(
        self,
        booking_id: Optional[UUID] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[BookingStatusHistory], int]:
        """History rows newest first, optionally for one booking, with total count"""
        conditions = []
        if booking_id is not None:
            conditions.append(BookingStatusHistory.booking_id == booking_id)

        total = self.db.execute(
            select(func.count()).select_from(BookingStatusHistory).where(*conditions)
        ).scalar_one()

        stmt = (
            select(BookingStatusHistory)
            .where(*conditions)
            .order_by(BookingStatusHistory.changed_at.desc(), BookingStatusHistory.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.execute(stmt).scalars().all()), total
