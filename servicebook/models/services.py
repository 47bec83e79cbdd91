"""
Service model - catalogue of services that can be booked.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import String, Integer, Boolean, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from servicebook.lib.db import Base


class Service(Base):
    """
    Service entity - bookable services. Read-only for the booking core.
    """
    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Service details
    name: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price_range: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    duration_estimate: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Typical duration in minutes",
    )

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name={self.name}, duration={self.duration_estimate})>"
