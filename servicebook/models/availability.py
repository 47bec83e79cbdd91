"""
Availability model - recurring weekly availability windows of a professional.
"""
from datetime import datetime, time as time_type, timezone
from uuid import UUID

from sqlalchemy import Integer, Boolean, DateTime, ForeignKey, Time, Uuid, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from servicebook.lib.db import Base


class Availability(Base):
    """
    Availability window entity.
    `day` follows 0=Sunday ... 6=Saturday.
    """
    __tablename__ = "availability"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    professional_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("professional_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    day: Mapped[int] = mapped_column(Integer, nullable=False)
    from_time: Mapped[time_type] = mapped_column(Time, nullable=False)
    to_time: Mapped[time_type] = mapped_column(Time, nullable=False)

    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    detailed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Fine-grained availability enabled for this window",
    )

    # Timestamps
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

    __table_args__ = (
        CheckConstraint("day >= 0 AND day <= 6", name="availability_day_range"),
        CheckConstraint("from_time < to_time", name="availability_window_order"),
    )

    def __repr__(self) -> str:
        return (
            f"<Availability(id={self.id}, professional_id={self.professional_id}, "
            f"day={self.day}, {self.from_time}-{self.to_time})>"
        )
