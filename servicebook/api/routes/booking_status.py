"""
Booking status API routes.

Catalogue management is admin only; history and transitions are available
to the booking parties through their roles.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from servicebook.api.dependencies import get_current_user, get_db, require_role
from servicebook.api.routes.bookings import BookingTransitionResponse, StatusHistoryResponse
from servicebook.models.users import User, UserType
from servicebook.services.booking_service import BookingService
from servicebook.services.booking_status_service import BookingStatusService


# Pydantic schemas
class BookingStatusCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, examples=["rescheduled"])
    description: Optional[str] = None


class BookingStatusUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None


class BookingStatusResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingStatusListResponse(BaseModel):
    statuses: List[BookingStatusResponse]
    total: int


class StatusHistoryListResponse(BaseModel):
    history: List[StatusHistoryResponse]
    total: int


class StatusCountResponse(BaseModel):
    status_id: int
    name: str
    count: int


class BookingStatusStatisticsResponse(BaseModel):
    status_counts: List[StatusCountResponse]
    total_bookings: int
    recent_changes: List[StatusHistoryResponse]


class BookingTransitionRequest(BaseModel):
    status_id: int


def get_status_service(db: Session = Depends(get_db)) -> BookingStatusService:
    return BookingStatusService(db)


# Router
router = APIRouter(prefix="/booking-status", tags=["booking-status"])


@router.get("", response_model=BookingStatusListResponse)
def list_booking_statuses(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    service: BookingStatusService = Depends(get_status_service),
):
    return service.list_statuses(limit=limit, offset=offset).unwrap()


@router.post("", response_model=BookingStatusResponse, status_code=status.HTTP_201_CREATED)
def create_booking_status(
    payload: BookingStatusCreateRequest,
    user: User = Depends(require_role(UserType.ADMIN)),
    service: BookingStatusService = Depends(get_status_service),
):
    """Add a status to the catalogue; 409 on a duplicate name."""
    return service.create_status(payload.name, payload.description).unwrap()


@router.get("/history", response_model=StatusHistoryListResponse)
def list_booking_status_history(
    booking_id: Optional[UUID] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    service: BookingStatusService = Depends(get_status_service),
):
    """Status changes, newest first, optionally for one booking."""
    return service.list_history(booking_id=booking_id, limit=limit, offset=offset).unwrap()


@router.get("/statistics", response_model=BookingStatusStatisticsResponse)
def booking_status_statistics(
    user: User = Depends(require_role(UserType.ADMIN)),
    service: BookingStatusService = Depends(get_status_service),
):
    return service.get_statistics().unwrap()


@router.get("/{status_id}", response_model=BookingStatusResponse)
def get_booking_status(
    status_id: int,
    user: User = Depends(get_current_user),
    service: BookingStatusService = Depends(get_status_service),
):
    return service.get_status(status_id).unwrap()


@router.put("/{status_id}", response_model=BookingStatusResponse)
def update_booking_status_definition(
    status_id: int,
    payload: BookingStatusUpdateRequest,
    user: User = Depends(require_role(UserType.ADMIN)),
    service: BookingStatusService = Depends(get_status_service),
):
    return service.update_status(status_id, payload.name, payload.description).unwrap()


@router.delete("/{status_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_booking_status(
    status_id: int,
    user: User = Depends(require_role(UserType.ADMIN)),
    service: BookingStatusService = Depends(get_status_service),
):
    """Delete a status; 409 while any booking references it."""
    service.delete_status(status_id).unwrap()


@router.patch("/bookings/{booking_id}", response_model=BookingTransitionResponse)
def transition_booking(
    booking_id: UUID,
    payload: BookingTransitionRequest,
    user: User = Depends(require_role(UserType.ADMIN, UserType.PROFESSIONAL)),
    db: Session = Depends(get_db),
):
    """
    Move a booking to another status and record the change.

    Professionals may only update their own bookings.
    """
    if user.type == UserType.PROFESSIONAL:
        return BookingService(db).update_status_as_professional(
            booking_id, user.id, payload.status_id
        ).unwrap()
    return BookingStatusService(db).update_booking_status(
        booking_id, payload.status_id, acting_user_id=user.id
    ).unwrap()
