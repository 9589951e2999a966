from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_doctor_user
from ...services.doctor_service import DoctorService, normalize_date
from ...schemas.doctor import (
    AvailabilityUpdate, AvailabilityResponse, DoctorResponse, SlotsResponse
)
from ...models.user import User

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get("", response_model=List[DoctorResponse])
def list_doctors(db: Session = Depends(get_db)):
    """List all doctors with their availability (public)."""
    return DoctorService(db).list_doctors()


@router.put("/availability", response_model=AvailabilityResponse)
def update_availability(
    availability: AvailabilityUpdate,
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    """Replace the calling doctor's slots for one date."""
    days = DoctorService(db).set_availability(
        current_user.id, availability.date, availability.slots
    )
    return AvailabilityResponse(
        message="Availability updated successfully.",
        availability=days
    )


@router.get("/{doctor_id}/slots", response_model=SlotsResponse)
def get_available_slots(
    doctor_id: int,
    date: str = Query(..., description="Calendar date, YYYY-MM-DD"),
    db: Session = Depends(get_db)
):
    """Slots a doctor offers on a date (public)."""
    slots = DoctorService(db).get_available_slots(doctor_id, date)
    return SlotsResponse(doctor_id=doctor_id, date=normalize_date(date), slots=slots)
