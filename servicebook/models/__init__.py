"""
SQLAlchemy models package.
Import all models here to ensure they're registered with Base.metadata.
"""
from servicebook.models.users import User, UserType
from servicebook.models.customers import CustomerProfile
from servicebook.models.professionals import ProfessionalProfile
from servicebook.models.services import Service
from servicebook.models.availability import Availability
from servicebook.models.bookings import Booking, BookingStatus, BookingStatusHistory
from servicebook.models.notifications import AuditLog, Notification, NotificationChannel

__all__ = [
    "User",
    "UserType",
    "CustomerProfile",
    "ProfessionalProfile",
    "Service",
    "Availability",
    "Booking",
    "BookingStatus",
    "BookingStatusHistory",
    "Notification",
    "NotificationChannel",
    "AuditLog",
]
