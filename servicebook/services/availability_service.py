"""
Availability service.

Manages a professional's recurring weekly availability windows and derives
the bookable slots for a calendar date:

1. windows for the date's weekday (0=Sunday) are cut into fixed-size slots,
2. non-cancelled bookings on that date are fetched,
3. a slot is unavailable when it overlaps a booking interval
   [time, time + duration) under the half-open rule.

Slot size is `settings.slot_duration_minutes` unless a service with a
duration estimate is given, in which case the service duration is used.
"""
from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, Iterable, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.orm import Session

from servicebook.lib.db import transaction
from servicebook.lib.logging import get_logger
from servicebook.lib.result import ErrorCategory, ServiceResult, persistence_guard
from servicebook.lib.settings import settings
from servicebook.lib.time_utils import (
    DAY_NAMES,
    MINUTES_PER_DAY,
    day_of_week,
    format_minutes,
    intervals_overlap,
    parse_date,
    parse_time,
    to_minutes,
)
from servicebook.models.availability import Availability
from servicebook.models.bookings import Booking
from servicebook.repositories.availability import AvailabilityRepository
from servicebook.repositories.bookings import BookingRepository
from servicebook.repositories.profiles import ProfileRepository


logger = get_logger(__name__)


DateLike = Union[str, date]
TimeLike = Union[str, time]


@dataclass(frozen=True)
class AvailableSlot:
    """A candidate slot inside one availability window."""
    start_time: str
    end_time: str
    available: bool
    availability_id: int


@dataclass
class DailyAvailability:
    """Slots of one professional for one date."""
    date: date
    day_of_week: int
    available_slots: List[AvailableSlot] = field(default_factory=list)


@dataclass
class WindowInput:
    """Validated input for creating an availability window."""
    day: int
    from_time: time
    to_time: time
    capacity: int = 1
    detailed: bool = False


def booking_interval(booking: Booking) -> Tuple[int, int]:
    """[start, end) of a booking in minutes since midnight."""
    start = to_minutes(booking.time)
    return start, start + booking.duration


def find_overlapping(bookings: Iterable[Booking], start: int, end: int) -> Optional[Booking]:
    """First booking whose interval overlaps [start, end), if any."""
    for booking in bookings:
        booking_start, booking_end = booking_interval(booking)
        if intervals_overlap(start, end, booking_start, booking_end):
            return booking
    return None


def build_slots(
    windows: Iterable[Availability],
    bookings: List[Booking],
    slot_minutes: int,
) -> List[AvailableSlot]:
    """
    Cut windows into slots of `slot_minutes` and mark occupied ones.

    Only slots that end inside their window are produced. Windows are
    expected in start-time order so the result is ordered too.
    """
    slots = []
    for window in windows:
        current = to_minutes(window.from_time)
        window_end = to_minutes(window.to_time)
        while current + slot_minutes <= window_end:
            slot_end = current + slot_minutes
            slots.append(
                AvailableSlot(
                    start_time=format_minutes(current),
                    end_time=format_minutes(slot_end),
                    available=find_overlapping(bookings, current, slot_end) is None,
                    availability_id=window.id,
                )
            )
            current = slot_end
    return slots


class AvailabilityService:
    """
    Availability windows and slot calculation for professionals.
    """

    def __init__(self, db: Session):
        self.db = db
        self.windows = AvailabilityRepository(db)
        self.bookings = BookingRepository(db)
        self.profiles = ProfileRepository(db)

    # ===== Slot calculation =====

    @persistence_guard("Failed to get available slots")
    def get_available_slots(
        self,
        professional_id: UUID,
        target_date: DateLike,
        service_id: Optional[int] = None,
    ) -> ServiceResult[List[AvailableSlot]]:
        """
        Ordered slots for a professional on a date.

        Returns an empty list when the professional has no window on that
        weekday. Past dates are not rejected.
        """
        try:
            day = parse_date(target_date)
        except ValueError:
            return ServiceResult.failure(
                ErrorCategory.VALIDATION,
                "Date must be in YYYY-MM-DD format",
                details={"date": str(target_date)},
            )

        if self.profiles.get_professional(professional_id) is None:
            return ServiceResult.not_found("Professional", professional_id)

        slot_minutes = settings.slot_duration_minutes
        if service_id is not None:
            service = self.profiles.get_service(service_id)
            if service is None:
                return ServiceResult.not_found("Service", service_id)
            if service.duration_estimate:
                slot_minutes = service.duration_estimate

        windows = self.windows.list_for_professional(professional_id, day=day_of_week(day))
        if not windows:
            return ServiceResult.success([])

        existing = self.bookings.list_active_on_date(professional_id, day)
        return ServiceResult.success(build_slots(windows, existing, slot_minutes))

    def get_daily_availability(
        self,
        professional_id: UUID,
        target_date: DateLike,
        service_id: Optional[int] = None,
    ) -> ServiceResult[DailyAvailability]:
        """Slots for a date together with the resolved weekday."""
        result = self.get_available_slots(professional_id, target_date, service_id)
        if not result.ok:
            return ServiceResult(error=result.error)
        day = parse_date(target_date)
        return ServiceResult.success(
            DailyAvailability(date=day, day_of_week=day_of_week(day), available_slots=result.value)
        )

    @persistence_guard("Failed to check slot availability")
    def check_slot(
        self,
        professional_id: UUID,
        target_date: DateLike,
        start: TimeLike,
        duration: int,
    ) -> ServiceResult[bool]:
        """
        Whether [start, start + duration) is free of bookings and fits
        inside one of the professional's windows for that weekday.
        """
        try:
            day = parse_date(target_date)
            start_minutes = to_minutes(parse_time(start))
        except ValueError as e:
            return ServiceResult.failure(ErrorCategory.VALIDATION, str(e))
        if duration <= 0 or start_minutes + duration > MINUTES_PER_DAY:
            return ServiceResult.failure(
                ErrorCategory.VALIDATION, "Duration must be positive and end by midnight"
            )

        if self.profiles.get_professional(professional_id) is None:
            return ServiceResult.not_found("Professional", professional_id)

        end_minutes = start_minutes + duration
        windows = self.windows.list_for_professional(professional_id, day=day_of_week(day))
        if self.containing_window(windows, start_minutes, end_minutes) is None:
            return ServiceResult.success(False)

        existing = self.bookings.list_active_on_date(professional_id, day)
        return ServiceResult.success(find_overlapping(existing, start_minutes, end_minutes) is None)

    @staticmethod
    def containing_window(
        windows: Iterable[Availability],
        start: int,
        end: int,
    ) -> Optional[Availability]:
        """Window that fully contains [start, end), if any."""
        for window in windows:
            if to_minutes(window.from_time) <= start and end <= to_minutes(window.to_time):
                return window
        return None

    # ===== Window management =====

    @staticmethod
    def validate_window(
        day: int,
        from_time: TimeLike,
        to_time: TimeLike,
        capacity: int = 1,
        detailed: bool = False,
    ) -> ServiceResult[WindowInput]:
        """Parse and check a window definition."""
        errors: Dict[str, str] = {}
        if not 0 <= day <= 6:
            errors["day"] = "Day must be between 0 (Sunday) and 6 (Saturday)"
        try:
            start = parse_time(from_time)
            end = parse_time(to_time)
        except ValueError:
            errors["time"] = "Time must be in HH:MM format"
        else:
            if start >= end:
                errors["time"] = "from_time must be earlier than to_time"
        if capacity < 1:
            errors["capacity"] = "Capacity must be at least 1"
        if errors:
            return ServiceResult.failure(
                ErrorCategory.VALIDATION, "Invalid availability window", details=errors
            )
        return ServiceResult.success(
            WindowInput(day=day, from_time=start, to_time=end, capacity=capacity, detailed=detailed)
        )

    def _overlapping_window(
        self,
        professional_id: UUID,
        window: WindowInput,
        exclude_id: Optional[int] = None,
    ) -> Optional[Availability]:
        for existing in self.windows.list_for_professional(professional_id, day=window.day):
            if existing.id == exclude_id:
                continue
            if intervals_overlap(
                to_minutes(window.from_time),
                to_minutes(window.to_time),
                to_minutes(existing.from_time),
                to_minutes(existing.to_time),
            ):
                return existing
        return None

    @persistence_guard("Failed to create availability")
    def create_window(
        self,
        professional_id: UUID,
        day: int,
        from_time: TimeLike,
        to_time: TimeLike,
        capacity: int = 1,
        detailed: bool = False,
    ) -> ServiceResult[Availability]:
        """Add a weekly window; windows of one day must not overlap."""
        validated = self.validate_window(day, from_time, to_time, capacity, detailed)
        if not validated.ok:
            return ServiceResult(error=validated.error)
        window = validated.value

        if self.profiles.get_professional(professional_id, active_only=False) is None:
            return ServiceResult.not_found("Professional profile", professional_id)

        clash = self._overlapping_window(professional_id, window)
        if clash is not None:
            return ServiceResult.failure(
                ErrorCategory.CONFLICT,
                "Availability overlaps an existing window for this day",
                details={"availability_id": clash.id},
            )

        with transaction(self.db):
            created = self.windows.add(
                Availability(
                    professional_id=professional_id,
                    day=window.day,
                    from_time=window.from_time,
                    to_time=window.to_time,
                    capacity=window.capacity,
                    detailed=window.detailed,
                )
            )
        logger.info(
            "Availability created",
            extra={"professional_id": str(professional_id), "availability_id": created.id},
        )
        return ServiceResult.success(created)

    @persistence_guard("Failed to retrieve availability")
    def list_windows(
        self,
        professional_id: UUID,
        day: Optional[int] = None,
    ) -> ServiceResult[List[Availability]]:
        return ServiceResult.success(self.windows.list_for_professional(professional_id, day=day))

    def weekly(self, professional_id: UUID) -> ServiceResult[Dict[str, List[Availability]]]:
        """Windows grouped by day name, sunday first."""
        result = self.list_windows(professional_id)
        if not result.ok:
            return ServiceResult(error=result.error)
        week: Dict[str, List[Availability]] = {name: [] for name in DAY_NAMES}
        for window in result.value:
            week[DAY_NAMES[window.day]].append(window)
        return ServiceResult.success(week)

    @persistence_guard("Failed to update availability")
    def update_window(
        self,
        availability_id: int,
        professional_id: UUID,
        **changes,
    ) -> ServiceResult[Availability]:
        """Partially update a window owned by the professional."""
        existing = self.windows.get(availability_id, professional_id=professional_id)
        if existing is None:
            return ServiceResult.failure(
                ErrorCategory.NOT_FOUND,
                "Availability not found or unauthorized",
                resource="Availability",
                resource_id=str(availability_id),
            )

        validated = self.validate_window(
            day=changes.get("day") if changes.get("day") is not None else existing.day,
            from_time=changes.get("from_time") or existing.from_time,
            to_time=changes.get("to_time") or existing.to_time,
            capacity=changes.get("capacity") or existing.capacity,
            detailed=(
                changes["detailed"] if changes.get("detailed") is not None else existing.detailed
            ),
        )
        if not validated.ok:
            return ServiceResult(error=validated.error)
        window = validated.value

        clash = self._overlapping_window(professional_id, window, exclude_id=existing.id)
        if clash is not None:
            return ServiceResult.failure(
                ErrorCategory.CONFLICT,
                "Availability overlaps an existing window for this day",
                details={"availability_id": clash.id},
            )

        with transaction(self.db):
            existing.day = window.day
            existing.from_time = window.from_time
            existing.to_time = window.to_time
            existing.capacity = window.capacity
            existing.detailed = window.detailed
        return ServiceResult.success(existing)

    @persistence_guard("Failed to delete availability")
    def delete_window(self, availability_id: int, professional_id: UUID) -> ServiceResult[None]:
        existing = self.windows.get(availability_id, professional_id=professional_id)
        if existing is None:
            return ServiceResult.failure(
                ErrorCategory.NOT_FOUND,
                "Availability not found or unauthorized",
                resource="Availability",
                resource_id=str(availability_id),
            )
        with transaction(self.db):
            self.windows.delete(existing)
        return ServiceResult.success(None)

    @persistence_guard("Failed to create availability")
    def bulk_create(
        self,
        professional_id: UUID,
        windows: List[dict],
        replace_all: bool = False,
    ) -> ServiceResult[List[Availability]]:
        """
        Create several windows at once, all or nothing.

        With `replace_all` the professional's existing windows are removed
        first; otherwise new windows must not overlap existing ones.
        """
        if self.profiles.get_professional(professional_id, active_only=False) is None:
            return ServiceResult.not_found("Professional profile", professional_id)

        validated: List[WindowInput] = []
        for index, raw in enumerate(windows):
            result = self.validate_window(**raw)
            if not result.ok:
                return ServiceResult.failure(
                    ErrorCategory.VALIDATION,
                    f"Invalid availability window at position {index}",
                    details=result.error.details,
                )
            validated.append(result.value)

        # New windows must not overlap each other
        for i, first in enumerate(validated):
            for second in validated[i + 1:]:
                if first.day == second.day and intervals_overlap(
                    to_minutes(first.from_time),
                    to_minutes(first.to_time),
                    to_minutes(second.from_time),
                    to_minutes(second.to_time),
                ):
                    return ServiceResult.failure(
                        ErrorCategory.CONFLICT, "Submitted availability windows overlap"
                    )

        if not replace_all:
            for window in validated:
                if self._overlapping_window(professional_id, window) is not None:
                    return ServiceResult.failure(
                        ErrorCategory.CONFLICT,
                        "Availability overlaps an existing window for this day",
                    )

        with transaction(self.db):
            if replace_all:
                removed = self.windows.delete_all_for_professional(professional_id)
                logger.info(
                    "Replacing availability",
                    extra={"professional_id": str(professional_id), "removed": removed},
                )
            created = [
                self.windows.add(
                    Availability(
                        professional_id=professional_id,
                        day=w.day,
                        from_time=w.from_time,
                        to_time=w.to_time,
                        capacity=w.capacity,
                        detailed=w.detailed,
                    )
                )
                for w in validated
            ]
        return ServiceResult.success(created)
