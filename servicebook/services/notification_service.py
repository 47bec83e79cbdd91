"""
Notification service for booking events.

Booking creation and status changes are reported here after the booking
transaction has committed. Every event is written as an audit log entry and
as in-app notifications for the parties of the booking. The sink is
fire-and-forget: failures are logged and counted, never raised to the caller.
"""
from abc import ABC, abstractmethod
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from servicebook.lib.db import transaction
from servicebook.lib.logging import get_logger
from servicebook.lib.metrics import get_metrics_collector
from servicebook.lib.settings import settings
from servicebook.models.bookings import Booking
from servicebook.models.notifications import AuditLog, Notification, NotificationChannel
from servicebook.repositories.profiles import ProfileRepository


logger = get_logger(__name__)


BOOKING_CREATED = "booking_created"
BOOKING_STATUS_CHANGED = "booking_status_changed"


class NotificationProvider(ABC):
    """
    Abstract base class for notification delivery providers.
    """

    @abstractmethod
    def send(self, db: Session, user_id: UUID, event: str, message: str) -> bool:
        """
        Deliver a notification to one user.

        Args:
            db: Session of the surrounding sink transaction
            user_id: Recipient user
            event: Event type (booking_created, booking_status_changed)
            message: Human readable content

        Returns:
            True if delivered, False otherwise
        """
        pass

    @property
    @abstractmethod
    def channel(self) -> NotificationChannel:
        """Return the channel this provider supports."""
        pass


class InAppNotificationProvider(NotificationProvider):
    """
    Stores notifications in the notifications table for the app inbox.
    """

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.IN_APP

    def send(self, db: Session, user_id: UUID, event: str, message: str) -> bool:
        db.add(
            Notification(
                user_id=user_id,
                type=event,
                content=message,
                channel=NotificationChannel.IN_APP,
            )
        )
        return True


class LogNotificationProvider(NotificationProvider):
    """
    Development provider: writes the notification to the log only.
    """

    @property
    def channel(self) -> NotificationChannel:
        return NotificationChannel.EMAIL

    def send(self, db: Session, user_id: UUID, event: str, message: str) -> bool:
        logger.info(
            "Notification logged",
            extra={"user_id": str(user_id), "event": event, "content": message},
        )
        return True


class NotificationService:
    """
    Booking event sink.

    Handles:
    - Audit log entry per event
    - Notification per booking party (customer and professional) and provider
    - Isolation: its own transaction, errors logged and swallowed
    """

    def __init__(self, db: Session, providers: Optional[Iterable[NotificationProvider]] = None):
        """
        Args:
            db: Database session (used after the booking transaction committed)
            providers: Delivery providers; defaults to in-app delivery
        """
        self.db = db
        self.providers = list(providers) if providers is not None else [InAppNotificationProvider()]
        self.metrics = get_metrics_collector()

    def notify_booking_event(
        self,
        event: str,
        booking: Booking,
        message: str,
        actor_user_id: Optional[UUID] = None,
        metadata: Optional[dict] = None,
    ) -> bool:
        """
        Record a booking event.

        Args:
            event: booking_created or booking_status_changed
            booking: The committed booking
            message: Notification content
            actor_user_id: User who caused the event, None for system changes
            metadata: Extra audit fields

        Returns:
            True if recorded, False if the sink failed or is disabled
        """
        if not settings.notifications_enabled:
            return False

        booking_id = str(booking.id)
        try:
            with transaction(self.db):
                self.db.add(
                    AuditLog(
                        user_id=actor_user_id,
                        action=event,
                        entity_type="booking",
                        entity_id=booking_id,
                        audit_metadata=metadata or {},
                    )
                )
                recipients = ProfileRepository(self.db).party_user_ids(booking)
                for user_id in recipients - {actor_user_id}:
                    for provider in self.providers:
                        if not provider.send(self.db, user_id, event, message):
                            logger.warning(
                                "Notification provider declined delivery",
                                extra={"channel": provider.channel.value, "booking_id": booking_id},
                            )
        except Exception as e:
            self.metrics.increment_notification_failures(event)
            logger.error(
                f"Failed to record booking event: {e}",
                extra={"event": event, "booking_id": booking_id},
                exc_info=True,
            )
            return False

        logger.info("Booking event recorded", extra={"event": event, "booking_id": booking_id})
        return True
