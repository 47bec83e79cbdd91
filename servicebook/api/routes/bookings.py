"""
Booking API routes.

- GET   /bookings/availability/{professional_id}: bookable slots for a date
- POST  /bookings: create a booking (customer)
- GET   /bookings: bookings of the caller
- GET   /bookings/{booking_id}: one booking (parties only)
- PATCH /bookings/{booking_id}/status: status change (assigned professional)
- PATCH /bookings/{booking_id}/cancel: cancellation (booking customer)
"""
from datetime import date as date_type, datetime, time as time_type
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from servicebook.api.dependencies import get_current_user, get_db, require_role
from servicebook.models.users import User, UserType
from servicebook.services.availability_service import AvailabilityService
from servicebook.services.booking_service import BookingService


# Pydantic schemas
class SlotResponse(BaseModel):
    """One candidate slot inside an availability window."""
    start_time: str = Field(..., examples=["09:00"])
    end_time: str = Field(..., examples=["10:00"])
    available: bool
    availability_id: int

    model_config = {"from_attributes": True}


class AvailableSlotsResponse(BaseModel):
    professional_id: UUID
    date: date_type
    slots: List[SlotResponse]


class BookingCreateRequest(BaseModel):
    """Create booking payload."""
    professional_id: UUID
    service_id: int
    date: date_type = Field(..., description="Calendar day (YYYY-MM-DD)")
    time: time_type = Field(..., description="Start time (HH:MM)")
    duration: Optional[int] = Field(
        None, gt=0, description="Minutes; defaults to the service estimate"
    )
    notes: Optional[str] = Field(None, max_length=2000)
    availability_id: Optional[int] = None


class BookingResponse(BaseModel):
    id: UUID
    customer_id: UUID
    professional_id: UUID
    service_id: int
    availability_id: Optional[int] = None
    date: date_type
    time: time_type
    duration: int
    status_id: int
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class BookingListResponse(BaseModel):
    bookings: List[BookingResponse]
    total: int
    has_more: bool


class StatusHistoryResponse(BaseModel):
    id: int
    booking_id: UUID
    old_status: str
    new_status: str
    changed_by: Optional[UUID] = None
    changed_at: datetime

    model_config = {"from_attributes": True}


class BookingTransitionResponse(BaseModel):
    """Updated booking together with the history row of the change."""
    booking: BookingResponse
    history: StatusHistoryResponse


class BookingStatusChangeRequest(BaseModel):
    status_id: int


class BookingCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


# Dependency to get BookingService
def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Get BookingService instance with database session."""
    return BookingService(db)


# Router
router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/availability/{professional_id}", response_model=AvailableSlotsResponse)
def get_available_slots(
    professional_id: UUID,
    date: date_type = Query(..., description="Calendar day (YYYY-MM-DD)"),
    service_id: Optional[int] = Query(None, description="Use the service duration as slot size"),
    db: Session = Depends(get_db),
):
    """
    Bookable slots of a professional for one date.

    Slots overlapping a non-cancelled booking are returned with
    available=false. Public endpoint.
    """
    slots = AvailabilityService(db).get_available_slots(
        professional_id, date, service_id=service_id
    ).unwrap()
    return AvailableSlotsResponse(
        professional_id=professional_id,
        date=date,
        slots=[SlotResponse.model_validate(s) for s in slots],
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    payload: BookingCreateRequest,
    user: User = Depends(require_role(UserType.CUSTOMER)),
    booking_service: BookingService = Depends(get_booking_service),
):
    """
    Book a professional.

    Returns 409 when the requested interval overlaps an existing booking.
    """
    return booking_service.create_booking(
        customer_user_id=user.id,
        professional_id=payload.professional_id,
        service_id=payload.service_id,
        booking_date=payload.date,
        booking_time=payload.time,
        duration=payload.duration,
        notes=payload.notes,
        availability_id=payload.availability_id,
    ).unwrap()


@router.get("", response_model=BookingListResponse)
def list_bookings(
    status_name: Optional[str] = Query(None, alias="status", description="Filter by status name"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
):
    return booking_service.list_user_bookings(
        user.id, user.type, status=status_name, limit=limit, offset=offset
    ).unwrap()


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: UUID,
    user: User = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
):
    return booking_service.get_booking(booking_id, user.id, user.type).unwrap()


@router.patch("/{booking_id}/status", response_model=BookingTransitionResponse)
def update_booking_status(
    booking_id: UUID,
    payload: BookingStatusChangeRequest,
    user: User = Depends(require_role(UserType.PROFESSIONAL)),
    booking_service: BookingService = Depends(get_booking_service),
):
    """Status change by the professional assigned to the booking."""
    return booking_service.update_status_as_professional(
        booking_id, user.id, payload.status_id
    ).unwrap()


@router.patch("/{booking_id}/cancel", response_model=BookingTransitionResponse)
def cancel_booking(
    booking_id: UUID,
    payload: Optional[BookingCancelRequest] = None,
    user: User = Depends(require_role(UserType.CUSTOMER)),
    booking_service: BookingService = Depends(get_booking_service),
):
    """
    Cancel a booking; the optional reason is appended to the booking notes.
    """
    reason = payload.reason if payload else None
    return booking_service.cancel_booking(booking_id, user.id, reason=reason).unwrap()
