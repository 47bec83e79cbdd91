"""
Booking status service.

Handles:
- The booking status catalogue (list, get, create, update, delete)
- Status transitions of bookings with an append-only history row
- History listing and status statistics
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from servicebook.lib.db import transaction
from servicebook.lib.logging import get_logger
from servicebook.lib.metrics import get_metrics_collector
from servicebook.lib.result import ErrorCategory, ServiceResult, persistence_guard
from servicebook.lib.settings import settings
from servicebook.lib.time_utils import to_minutes
from servicebook.models.bookings import Booking, BookingStatus, BookingStatusHistory
from servicebook.repositories.booking_status import (
    BookingStatusHistoryRepository,
    BookingStatusRepository,
)
from servicebook.repositories.bookings import BookingRepository
from servicebook.repositories.profiles import ProfileRepository
from servicebook.services.availability_service import find_overlapping
from servicebook.services.notification_service import (
    BOOKING_STATUS_CHANGED,
    NotificationService,
)


logger = get_logger(__name__)


DEFAULT_STATUSES = (
    ("pending", "Booking is waiting for professional confirmation"),
    ("confirmed", "Booking has been confirmed by the professional"),
    ("completed", "Service has been delivered"),
    ("cancelled", "Booking has been cancelled"),
)

# Allowed edges between the default statuses; completed and cancelled are terminal
STATUS_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

UNKNOWN_STATUS = "unknown"


def is_cancelled_status(name: str) -> bool:
    return name.lower() in {n.lower() for n in settings.cancelled_status_names}


def is_transition_allowed(old_status: str, new_status: str) -> bool:
    """
    Check an edge against the status graph.

    Statuses outside the graph (custom catalogue entries) are unrestricted.
    """
    old_key = "cancelled" if is_cancelled_status(old_status) else old_status.lower()
    new_key = "cancelled" if is_cancelled_status(new_status) else new_status.lower()
    if old_key not in STATUS_TRANSITIONS or new_key not in STATUS_TRANSITIONS:
        return True
    return new_key in STATUS_TRANSITIONS[old_key]


class BookingStatusService:
    """
    Service for booking statuses and status transitions.
    """

    def __init__(self, db: Session, notifier: Optional[NotificationService] = None):
        self.db = db
        self.statuses = BookingStatusRepository(db)
        self.history = BookingStatusHistoryRepository(db)
        self.bookings = BookingRepository(db)
        self.profiles = ProfileRepository(db)
        self.notifier = notifier or NotificationService(db)
        self.metrics = get_metrics_collector()

    # ===== Catalogue =====

    @persistence_guard("Failed to retrieve booking statuses")
    def list_statuses(self, limit: int = 20, offset: int = 0) -> ServiceResult[Dict[str, Any]]:
        statuses, total = self.statuses.list(limit=limit, offset=offset)
        return ServiceResult.success({"statuses": statuses, "total": total})

    @persistence_guard("Failed to retrieve booking status")
    def get_status(self, status_id: int) -> ServiceResult[BookingStatus]:
        status = self.statuses.get(status_id)
        if status is None:
            return ServiceResult.not_found("Booking status", status_id)
        return ServiceResult.success(status)

    @staticmethod
    def _validate_name(name: Optional[str]) -> Optional[str]:
        if name is None or not name.strip():
            return "Status name is required"
        if len(name.strip()) > 50:
            return "Status name must be at most 50 characters"
        return None

    @persistence_guard("Failed to create booking status")
    def create_status(
        self,
        name: str,
        description: Optional[str] = None,
    ) -> ServiceResult[BookingStatus]:
        """Create a catalogue entry; names are unique."""
        problem = self._validate_name(name)
        if problem:
            return ServiceResult.failure(
                ErrorCategory.VALIDATION, problem, details={"name": problem}
            )
        name = name.strip()

        if self.statuses.get_by_name(name) is not None:
            return ServiceResult.failure(
                ErrorCategory.CONFLICT, f"Booking status '{name}' already exists"
            )

        try:
            with transaction(self.db):
                status = self.statuses.add(BookingStatus(name=name, description=description))
        except IntegrityError as e:
            return ServiceResult.failure(
                ErrorCategory.CONFLICT, f"Booking status '{name}' already exists", cause=e
            )

        logger.info("Booking status created", extra={"status_id": status.id, "name": name})
        return ServiceResult.success(status)

    @persistence_guard("Failed to update booking status")
    def update_status(
        self,
        status_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ServiceResult[BookingStatus]:
        status = self.statuses.get(status_id)
        if status is None:
            return ServiceResult.not_found("Booking status", status_id)

        if name is not None:
            problem = self._validate_name(name)
            if problem:
                return ServiceResult.failure(
                    ErrorCategory.VALIDATION, problem, details={"name": problem}
                )
            name = name.strip()
            existing = self.statuses.get_by_name(name)
            if existing is not None and existing.id != status.id:
                return ServiceResult.failure(
                    ErrorCategory.CONFLICT, f"Booking status '{name}' already exists"
                )

        try:
            with transaction(self.db):
                if name is not None:
                    status.name = name
                if description is not None:
                    status.description = description
        except IntegrityError as e:
            return ServiceResult.failure(
                ErrorCategory.CONFLICT, f"Booking status '{name}' already exists", cause=e
            )
        return ServiceResult.success(status)

    @persistence_guard("Failed to delete booking status")
    def delete_status(self, status_id: int) -> ServiceResult[None]:
        """Delete a status that no booking references."""
        status = self.statuses.get(status_id)
        if status is None:
            return ServiceResult.not_found("Booking status", status_id)

        if self.statuses.is_referenced(status_id):
            return ServiceResult.failure(
                ErrorCategory.CONFLICT,
                "Cannot delete booking status that is in use",
                details={"status_id": status_id},
            )

        try:
            with transaction(self.db):
                self.statuses.delete(status)
        except IntegrityError as e:
            # A booking referencing the status was inserted concurrently
            return ServiceResult.failure(
                ErrorCategory.CONFLICT, "Cannot delete booking status that is in use", cause=e
            )

        logger.info("Booking status deleted", extra={"status_id": status_id})
        return ServiceResult.success(None)

    @persistence_guard("Failed to seed booking statuses")
    def seed_default_statuses(self) -> ServiceResult[List[BookingStatus]]:
        """Insert the default statuses that are missing."""
        created = []
        with transaction(self.db):
            for name, description in DEFAULT_STATUSES:
                if self.statuses.get_by_name(name) is None:
                    created.append(
                        self.statuses.add(BookingStatus(name=name, description=description))
                    )
        return ServiceResult.success(created)

    # ===== Transitions =====

    @persistence_guard("Failed to update booking status")
    def update_booking_status(
        self,
        booking_id: UUID,
        new_status_id: int,
        acting_user_id: Optional[UUID] = None,
        note: Optional[str] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Move a booking to a new status and append one history row.

        The booking row is locked for the duration of the update; the status
        change and the history insert commit together or not at all.

        Args:
            booking_id: Booking to update
            new_status_id: Target status
            acting_user_id: User attributed in the history, None for system changes
            note: Text appended to the booking notes in the same transaction

        Returns:
            ServiceResult with {"booking", "history"}
        """
        if acting_user_id is not None and self.profiles.get_user(acting_user_id) is None:
            return ServiceResult.not_found("User", acting_user_id)

        with transaction(self.db):
            booking = self.bookings.get(booking_id, for_update=True)
            if booking is None:
                return ServiceResult.not_found("Booking", booking_id)

            new_status = self.statuses.get(new_status_id)
            if new_status is None:
                return ServiceResult.not_found("Booking status", new_status_id)

            current = self.statuses.get(booking.status_id)
            old_name = current.name if current is not None else UNKNOWN_STATUS

            if settings.enforce_status_transitions and not is_transition_allowed(
                old_name, new_status.name
            ):
                return ServiceResult.failure(
                    ErrorCategory.CONFLICT,
                    f"Cannot change booking status from {old_name} to {new_status.name}",
                    details={"old_status": old_name, "new_status": new_status.name},
                )

            cancelling = is_cancelled_status(new_status.name)
            if booking.is_cancelled and not cancelling:
                # The slot was released on cancellation and may be taken again
                self.profiles.get_professional(
                    booking.professional_id, active_only=False, for_update=True
                )
                start = to_minutes(booking.time)
                active = self.bookings.list_active_on_date(booking.professional_id, booking.date)
                if find_overlapping(active, start, start + booking.duration) is not None:
                    self.metrics.increment_conflicts(reason="reactivation")
                    return ServiceResult.failure(
                        ErrorCategory.CONFLICT, "Time slot is not available anymore"
                    )
                booking.cancelled_at = None
            elif cancelling and not booking.is_cancelled:
                booking.cancelled_at = datetime.now(timezone.utc)

            booking.status_id = new_status.id
            if note:
                booking.notes = f"{booking.notes}\n{note}" if booking.notes else note

            entry = self.history.add(
                BookingStatusHistory(
                    booking_id=booking.id,
                    old_status=old_name,
                    new_status=new_status.name,
                    changed_by=acting_user_id,
                )
            )

        self.metrics.increment_status_transitions(old_name, new_status.name)
        logger.info(
            "Booking status changed",
            extra={
                "booking_id": str(booking.id),
                "old_status": old_name,
                "new_status": new_status.name,
            },
        )
        self.notifier.notify_booking_event(
            BOOKING_STATUS_CHANGED,
            booking,
            f"Booking status changed from {old_name} to {new_status.name}",
            actor_user_id=acting_user_id,
            metadata={"old_status": old_name, "new_status": new_status.name},
        )
        return ServiceResult.success({"booking": booking, "history": entry})

    # ===== History =====

    @persistence_guard("Failed to retrieve booking status history")
    def list_history(
        self,
        booking_id: Optional[UUID] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> ServiceResult[Dict[str, Any]]:
        if limit < 1 or offset < 0:
            return ServiceResult.failure(
                ErrorCategory.VALIDATION, "limit must be positive and offset non-negative"
            )
        entries, total = self.history.list(booking_id=booking_id, limit=limit, offset=offset)
        return ServiceResult.success({"history": entries, "total": total})

    @persistence_guard("Failed to retrieve booking status statistics")
    def get_statistics(self) -> ServiceResult[Dict[str, Any]]:
        """Per-status booking counts, total bookings and the ten latest changes."""
        counts = dict(self.bookings.count_by_status())
        status_counts = [
            {"status_id": status.id, "name": status.name, "count": counts.get(status.id, 0)}
            for status in self.statuses.list_all()
        ]
        recent, _ = self.history.list(limit=10)
        return ServiceResult.success(
            {
                "status_counts": status_counts,
                "total_bookings": sum(counts.values()),
                "recent_changes": recent,
            }
        )

    def find_cancelled_status(self) -> Optional[BookingStatus]:
        """First catalogue entry named like a cancelled status."""
        for name in settings.cancelled_status_names:
            status = self.statuses.get_by_name(name)
            if status is not None:
                return status
        return None
