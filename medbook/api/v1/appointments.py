from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_doctor_user, get_patient_user
from ...services.booking_service import BookingService
from ...schemas.appointment import (
    AppointmentCreate, AppointmentEnvelope, AppointmentResponse,
    DoctorAppointmentResponse, PatientAppointmentResponse
)
from ...models.user import User

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.post("", response_model=AppointmentEnvelope, status_code=status.HTTP_201_CREATED)
def book_appointment(
    booking: AppointmentCreate,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    """Book a slot with a doctor (patient only)."""
    appointment = BookingService(db).book_appointment(
        current_user.id, booking.doctor_id, booking.date, booking.time
    )
    return AppointmentEnvelope(
        message="Appointment booked successfully.",
        appointment=AppointmentResponse.model_validate(appointment)
    )


@router.get("/patient", response_model=List[PatientAppointmentResponse])
def get_patient_appointments(
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    """The calling patient's appointments with doctor names."""
    return BookingService(db).list_for_patient(current_user.id)


@router.get("/doctor", response_model=List[DoctorAppointmentResponse])
def get_doctor_appointments(
    current_user: User = Depends(get_doctor_user),
    db: Session = Depends(get_db)
):
    """The calling doctor's appointments with patient names."""
    return BookingService(db).list_for_doctor(current_user.id)


@router.put("/{appointment_id}/cancel", response_model=AppointmentEnvelope)
def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    """Cancel one of the calling patient's appointments."""
    appointment = BookingService(db).cancel_appointment(current_user.id, appointment_id)
    return AppointmentEnvelope(
        message="Appointment cancelled successfully.",
        appointment=AppointmentResponse.model_validate(appointment)
    )
