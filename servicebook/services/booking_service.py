"""
Booking service.

Handles:
- Booking creation with overlap detection per professional and date
- Booking reads restricted to the booking parties
- Professional status updates and customer cancellation through the
  status transition recorder
"""
from datetime import date, time
from typing import Any, Dict, Optional, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from servicebook.lib.db import transaction
from servicebook.lib.logging import get_logger
from servicebook.lib.metrics import get_metrics_collector
from servicebook.lib.result import ErrorCategory, ServiceResult, persistence_guard
from servicebook.lib.settings import settings
from servicebook.lib.time_utils import (
    MINUTES_PER_DAY,
    day_of_week,
    parse_date,
    parse_time,
    to_minutes,
)
from servicebook.models.bookings import Booking
from servicebook.models.users import UserType
from servicebook.repositories.availability import AvailabilityRepository
from servicebook.repositories.booking_status import BookingStatusRepository
from servicebook.repositories.bookings import BookingRepository
from servicebook.repositories.profiles import ProfileRepository
from servicebook.services.availability_service import AvailabilityService, find_overlapping
from servicebook.services.booking_status_service import BookingStatusService
from servicebook.services.notification_service import BOOKING_CREATED, NotificationService


logger = get_logger(__name__)


SLOT_NOT_AVAILABLE = "Time slot is not available"


class BookingService:
    """
    Service for creating and managing bookings.
    """

    def __init__(self, db: Session, notifier: Optional[NotificationService] = None):
        self.db = db
        self.bookings = BookingRepository(db)
        self.windows = AvailabilityRepository(db)
        self.statuses = BookingStatusRepository(db)
        self.profiles = ProfileRepository(db)
        self.notifier = notifier or NotificationService(db)
        self.status_service = BookingStatusService(db, notifier=self.notifier)
        self.metrics = get_metrics_collector()

    @persistence_guard("Failed to create booking")
    def create_booking(
        self,
        customer_user_id: UUID,
        professional_id: UUID,
        service_id: int,
        booking_date: Union[str, date],
        booking_time: Union[str, time],
        duration: Optional[int] = None,
        notes: Optional[str] = None,
        availability_id: Optional[int] = None,
    ) -> ServiceResult[Booking]:
        """
        Create a pending booking for the authenticated customer.

        Args:
            customer_user_id: User id of the booking customer
            professional_id: Professional profile to book
            service_id: Service to deliver
            booking_date: Calendar date (YYYY-MM-DD)
            booking_time: Start time (HH:MM)
            duration: Minutes; defaults to the service estimate or the slot size
            notes: Free text for the professional
            availability_id: Window the booking was picked from

        Returns:
            ServiceResult with the created booking, Conflict when the
            requested interval overlaps a non-cancelled booking
        """
        customer = self.profiles.get_customer_by_user(customer_user_id)
        if customer is None:
            return ServiceResult.not_found("Customer profile", customer_user_id)

        if self.profiles.get_professional(professional_id) is None:
            return ServiceResult.not_found("Professional", professional_id)

        service = self.profiles.get_service(service_id)
        if service is None:
            return ServiceResult.not_found("Service", service_id)

        try:
            day = parse_date(booking_date)
            start_time = parse_time(booking_time)
        except ValueError as e:
            return ServiceResult.failure(ErrorCategory.VALIDATION, str(e))

        if duration is None:
            duration = service.duration_estimate or settings.slot_duration_minutes
        start = to_minutes(start_time)
        end = start + duration
        if duration <= 0 or end > MINUTES_PER_DAY:
            return ServiceResult.failure(
                ErrorCategory.VALIDATION,
                "Duration must be positive and the booking must end by midnight",
                details={"duration": duration},
            )

        if availability_id is not None:
            if self.windows.get(availability_id, professional_id=professional_id) is None:
                return ServiceResult.not_found("Availability", availability_id)

        pending = self.statuses.get_by_name(settings.default_booking_status)
        if pending is None:
            logger.error(
                "Default booking status missing",
                extra={"status": settings.default_booking_status},
            )
            return ServiceResult.failure(
                ErrorCategory.INTERNAL, "Default booking status is not configured"
            )

        try:
            with transaction(self.db):
                # Serialises concurrent bookings for this professional
                self.profiles.get_professional(professional_id, for_update=True)

                existing = self.bookings.list_active_on_date(professional_id, day)
                if find_overlapping(existing, start, end) is not None:
                    self.metrics.increment_conflicts(reason="overlap")
                    logger.info(
                        "Booking rejected, slot taken",
                        extra={
                            "professional_id": str(professional_id),
                            "date": day.isoformat(),
                            "time": start_time.isoformat(),
                        },
                    )
                    return ServiceResult.failure(ErrorCategory.CONFLICT, SLOT_NOT_AVAILABLE)

                if settings.require_availability_window:
                    windows = self.windows.list_for_professional(
                        professional_id, day=day_of_week(day)
                    )
                    window = AvailabilityService.containing_window(windows, start, end)
                    if window is None:
                        self.metrics.increment_conflicts(reason="outside_window")
                        return ServiceResult.failure(
                            ErrorCategory.CONFLICT,
                            "Requested time is outside the professional's availability",
                        )
                    availability_id = availability_id or window.id

                booking = self.bookings.add(
                    Booking(
                        customer_id=customer.id,
                        professional_id=professional_id,
                        service_id=service.id,
                        availability_id=availability_id,
                        date=day,
                        time=start_time,
                        duration=duration,
                        status_id=pending.id,
                        notes=notes,
                    )
                )
        except IntegrityError as e:
            # A concurrent insert took the same start time
            self.metrics.increment_conflicts(reason="constraint")
            logger.warning(
                "Booking rejected by unique constraint",
                extra={"professional_id": str(professional_id), "date": day.isoformat()},
            )
            return ServiceResult.failure(ErrorCategory.CONFLICT, SLOT_NOT_AVAILABLE, cause=e)

        self.metrics.increment_bookings_created(str(service.id))
        logger.info(
            "Booking created",
            extra={"booking_id": str(booking.id), "professional_id": str(professional_id)},
        )
        self.notifier.notify_booking_event(
            BOOKING_CREATED,
            booking,
            f"New booking on {day.isoformat()} at {start_time.strftime('%H:%M')}",
            actor_user_id=customer_user_id,
            metadata={"service_id": service.id, "duration": duration},
        )
        return ServiceResult.success(booking)

    def _can_access(self, booking: Booking, user_id: UUID, role: UserType) -> bool:
        if role == UserType.ADMIN:
            return True
        customer = self.profiles.get_customer(booking.customer_id)
        if customer is not None and customer.user_id == user_id:
            return True
        professional = self.profiles.get_professional(booking.professional_id, active_only=False)
        return professional is not None and professional.user_id == user_id

    @persistence_guard("Failed to retrieve booking")
    def get_booking(
        self,
        booking_id: UUID,
        user_id: UUID,
        role: UserType = UserType.CUSTOMER,
    ) -> ServiceResult[Booking]:
        booking = self.bookings.get(booking_id)
        if booking is None:
            return ServiceResult.not_found("Booking", booking_id)
        if not self._can_access(booking, user_id, role):
            return ServiceResult.failure(
                ErrorCategory.FORBIDDEN, "You do not have access to this booking"
            )
        return ServiceResult.success(booking)

    @persistence_guard("Failed to retrieve bookings")
    def list_user_bookings(
        self,
        user_id: UUID,
        role: UserType,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Bookings of the caller, newest first.

        Customers see their own bookings, professionals the bookings made
        with them, admins everything.
        """
        filters: Dict[str, Any] = {}
        if role == UserType.CUSTOMER:
            customer = self.profiles.get_customer_by_user(user_id)
            if customer is None:
                return ServiceResult.not_found("Customer profile", user_id)
            filters["customer_id"] = customer.id
        elif role == UserType.PROFESSIONAL:
            professional = self.profiles.get_professional_by_user(user_id)
            if professional is None:
                return ServiceResult.not_found("Professional profile", user_id)
            filters["professional_id"] = professional.id

        if status is not None:
            status_row = self.statuses.get_by_name(status)
            if status_row is None:
                return ServiceResult.failure(
                    ErrorCategory.VALIDATION,
                    f"Unknown booking status '{status}'",
                    details={"status": status},
                )
            filters["status_id"] = status_row.id

        bookings, total = self.bookings.list_for_party(limit=limit, offset=offset, **filters)
        return ServiceResult.success(
            {"bookings": bookings, "total": total, "has_more": offset + len(bookings) < total}
        )

    @persistence_guard("Failed to update booking status")
    def update_status_as_professional(
        self,
        booking_id: UUID,
        user_id: UUID,
        status_id: int,
    ) -> ServiceResult[Dict[str, Any]]:
        """Status change by the professional assigned to the booking."""
        booking = self.bookings.get(booking_id)
        if booking is None:
            return ServiceResult.not_found("Booking", booking_id)

        professional = self.profiles.get_professional_by_user(user_id)
        if professional is None or professional.id != booking.professional_id:
            return ServiceResult.failure(
                ErrorCategory.FORBIDDEN, "Only the assigned professional can update this booking"
            )

        return self.status_service.update_booking_status(
            booking_id, status_id, acting_user_id=user_id
        )

    @persistence_guard("Failed to cancel booking")
    def cancel_booking(
        self,
        booking_id: UUID,
        user_id: UUID,
        reason: Optional[str] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Cancel a booking on behalf of its customer.

        Completed and already cancelled bookings cannot be cancelled. The
        reason is appended to the booking notes.
        """
        booking = self.bookings.get(booking_id)
        if booking is None:
            return ServiceResult.not_found("Booking", booking_id)

        customer = self.profiles.get_customer_by_user(user_id)
        if customer is None or customer.id != booking.customer_id:
            return ServiceResult.failure(
                ErrorCategory.FORBIDDEN, "Only the booking customer can cancel this booking"
            )

        if booking.is_cancelled:
            return ServiceResult.failure(ErrorCategory.CONFLICT, "Booking is already cancelled")
        current = self.statuses.get(booking.status_id)
        if current is not None and current.name == "completed":
            return ServiceResult.failure(
                ErrorCategory.CONFLICT, "Cannot cancel a completed booking"
            )

        cancelled = self.status_service.find_cancelled_status()
        if cancelled is None:
            logger.error("Cancelled booking status missing")
            return ServiceResult.failure(
                ErrorCategory.INTERNAL, "Cancelled booking status is not configured"
            )

        note = f"Cancellation reason: {reason}" if reason else None
        return self.status_service.update_booking_status(
            booking_id, cancelled.id, acting_user_id=user_id, note=note
        )
