"""
User model - base identity for customers, professionals, and admins.
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4, UUID
import enum

from sqlalchemy import String, Boolean, DateTime, Uuid, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from servicebook.lib.db import Base


class UserType(str, enum.Enum):
    """User type enumeration."""
    CUSTOMER = "customer"
    PROFESSIONAL = "professional"
    ADMIN = "admin"


class User(Base):
    """
    User entity - identity record owned by the auth provider.
    Booking operations trust the id from a verified token and only look
    the row up to check that it exists and is active.
    """
    __tablename__ = "users"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    type: Mapped[UserType] = mapped_column(
        SQLEnum(UserType, name="user_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )

    # Status
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, type={self.type})>"
