"""
Availability API routes.

Professionals manage their own weekly windows; slot checks and the daily
view are public.
"""
from datetime import date as date_type, datetime, time as time_type
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from servicebook.api.dependencies import get_db, require_role
from servicebook.api.middleware.error_handler import NotFoundException
from servicebook.api.routes.bookings import SlotResponse
from servicebook.models.professionals import ProfessionalProfile
from servicebook.models.users import User, UserType
from servicebook.repositories.profiles import ProfileRepository
from servicebook.services.availability_service import AvailabilityService


# Pydantic schemas
class AvailabilityCreateRequest(BaseModel):
    """One weekly window, day 0 is Sunday."""
    day: int = Field(..., ge=0, le=6)
    from_time: time_type = Field(..., examples=["09:00"])
    to_time: time_type = Field(..., examples=["17:00"])
    capacity: int = Field(1, ge=1)
    detailed: bool = False


class AvailabilityUpdateRequest(BaseModel):
    day: Optional[int] = Field(None, ge=0, le=6)
    from_time: Optional[time_type] = None
    to_time: Optional[time_type] = None
    capacity: Optional[int] = Field(None, ge=1)
    detailed: Optional[bool] = None


class AvailabilityBulkRequest(BaseModel):
    windows: List[AvailabilityCreateRequest] = Field(..., min_length=1)
    replace_all: bool = False


class AvailabilityResponse(BaseModel):
    id: int
    professional_id: UUID
    day: int
    from_time: time_type
    to_time: time_type
    capacity: int
    detailed: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class SlotCheckRequest(BaseModel):
    date: date_type
    time: time_type
    duration: int = Field(..., gt=0)


class SlotCheckResponse(BaseModel):
    professional_id: UUID
    date: date_type
    time: time_type
    duration: int
    available: bool


class DailyAvailabilityResponse(BaseModel):
    date: date_type
    day_of_week: int
    available_slots: List[SlotResponse]

    model_config = {"from_attributes": True}


def get_current_professional(
    user: User = Depends(require_role(UserType.PROFESSIONAL)),
    db: Session = Depends(get_db),
) -> ProfessionalProfile:
    """Professional profile of the authenticated user."""
    professional = ProfileRepository(db).get_professional_by_user(user.id)
    if professional is None:
        raise NotFoundException("Professional profile")
    return professional


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


# Router
router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("", response_model=List[AvailabilityResponse])
def list_availability(
    day: Optional[int] = Query(None, ge=0, le=6),
    professional: ProfessionalProfile = Depends(get_current_professional),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.list_windows(professional.id, day=day).unwrap()


@router.post("", response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
def create_availability(
    payload: AvailabilityCreateRequest,
    professional: ProfessionalProfile = Depends(get_current_professional),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Add a weekly window; 409 when it overlaps another window of that day."""
    return service.create_window(professional.id, **payload.model_dump()).unwrap()


@router.get("/weekly", response_model=Dict[str, List[AvailabilityResponse]])
def weekly_availability(
    professional: ProfessionalProfile = Depends(get_current_professional),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Windows grouped by day name (sunday .. saturday)."""
    return service.weekly(professional.id).unwrap()


@router.post(
    "/bulk",
    response_model=List[AvailabilityResponse],
    status_code=status.HTTP_201_CREATED,
)
def bulk_create_availability(
    payload: AvailabilityBulkRequest,
    professional: ProfessionalProfile = Depends(get_current_professional),
    service: AvailabilityService = Depends(get_availability_service),
):
    """
    Create several windows at once.

    With replace_all the existing windows are removed first.
    """
    return service.bulk_create(
        professional.id,
        [w.model_dump() for w in payload.windows],
        replace_all=payload.replace_all,
    ).unwrap()


@router.put("/{availability_id}", response_model=AvailabilityResponse)
def update_availability(
    availability_id: int,
    payload: AvailabilityUpdateRequest,
    professional: ProfessionalProfile = Depends(get_current_professional),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.update_window(
        availability_id, professional.id, **payload.model_dump(exclude_none=True)
    ).unwrap()


@router.delete("/{availability_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_availability(
    availability_id: int,
    professional: ProfessionalProfile = Depends(get_current_professional),
    service: AvailabilityService = Depends(get_availability_service),
):
    service.delete_window(availability_id, professional.id).unwrap()


@router.post("/check/{professional_id}", response_model=SlotCheckResponse)
def check_slot(
    professional_id: UUID,
    payload: SlotCheckRequest,
    service: AvailabilityService = Depends(get_availability_service),
):
    """Whether an interval is inside a window and free of bookings."""
    available = service.check_slot(
        professional_id, payload.date, payload.time, payload.duration
    ).unwrap()
    return SlotCheckResponse(**payload.model_dump(), professional_id=professional_id, available=available)


@router.get("/daily/{professional_id}", response_model=DailyAvailabilityResponse)
def daily_availability(
    professional_id: UUID,
    date: date_type = Query(..., description="Calendar day (YYYY-MM-DD)"),
    service_id: Optional[int] = Query(None),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.get_daily_availability(professional_id, date, service_id=service_id).unwrap()
