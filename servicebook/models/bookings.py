"""
Booking models - bookings, the booking status catalogue and the
append-only status history.
"""
from datetime import date as date_type, datetime, time as time_type, timezone
from typing import Optional
from uuid import uuid4, UUID

from sqlalchemy import (
    String,
    Integer,
    Text,
    Date,
    Time,
    DateTime,
    ForeignKey,
    Uuid,
    Index,
    CheckConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from servicebook.lib.db import Base


class BookingStatus(Base):
    """
    Booking status catalogue (pending, confirmed, completed, cancelled, ...).
    A status referenced by any booking cannot be deleted.
    """
    __tablename__ = "booking_status"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<BookingStatus(id={self.id}, name={self.name})>"


class Booking(Base):
    """
    Booking entity - a customer's appointment with a professional.

    Never deleted: cancellation is a status. `cancelled_at` is set while the
    booking sits in a cancelled status and releases the slot for the partial
    unique index on (professional_id, date, time).
    """
    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # Relationships (RESTRICT: bookings are never physically deleted)
    customer_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("customer_profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    professional_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("professional_profiles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    service_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("services.id"),
        nullable=False,
    )
    availability_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("availability.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Timing
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    time: Mapped[time_type] = mapped_column(Time, nullable=False)
    duration: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Duration in minutes",
    )

    # Status (RESTRICT keeps referenced statuses from being deleted)
    status_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("booking_status.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("duration > 0", name="booking_positive_duration"),
        Index(
            "uq_bookings_active_slot",
            "professional_id",
            "date",
            "time",
            unique=True,
            postgresql_where=text("cancelled_at IS NULL"),
            sqlite_where=text("cancelled_at IS NULL"),
        ),
        Index("ix_bookings_professional_date", "professional_id", "date"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled_at is not None

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, professional_id={self.professional_id}, "
            f"date={self.date}, time={self.time}, status_id={self.status_id})>"
        )


class BookingStatusHistory(Base):
    """
    Append-only log of booking status transitions.
    """
    __tablename__ = "booking_status_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    booking_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("bookings.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    old_status: Mapped[str] = mapped_column(String(50), nullable=False)
    new_status: Mapped[str] = mapped_column(String(50), nullable=False)

    changed_by: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id"),
        nullable=True,
        comment="Null when the change was system triggered",
    )
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<BookingStatusHistory(booking_id={self.booking_id}, "
            f"{self.old_status} -> {self.new_status})>"
        )
