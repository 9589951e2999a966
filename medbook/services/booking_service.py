from sqlalchemy.orm import Session
from typing import List
import logging

from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..models.appointment import Appointment, AppointmentStatus
from ..models.user import User
from ..schemas.appointment import (
    AppointmentResponse, DoctorAppointmentResponse, PatientAppointmentResponse
)
from .doctor_service import DoctorService, normalize_date, normalize_time
from .ledger import PATIENT_CONFLICT, SLOT_CONFLICT, AppointmentLedger

logger = logging.getLogger(__name__)


class BookingService:
    """Books and cancels appointments.

    An appointment moves from ``booked`` to ``cancelled`` and stays there.
    Booking never removes the slot from the doctor's availability; the
    exclusivity rules only look at booked appointments, so a cancelled
    appointment frees its slot for the next patient.
    """

    def __init__(self, db: Session):
        self.db = db
        self.ledger = AppointmentLedger(db)
        self.directory = DoctorService(db)

    def book_appointment(self, patient_id: int, doctor_id: int, date: str, time: str) -> Appointment:
        if not doctor_id or not (date or "").strip() or not (time or "").strip():
            raise ValidationError("All appointment details are required.")

        date = normalize_date(date)
        time = normalize_time(time)

        patient = self.db.get(User, patient_id)
        if not patient:
            raise NotFoundError("Patient not found.")
        if not patient.role.can_book_appointments:
            raise AuthorizationError("Only patients can book appointments.")

        self.directory.get_profile(doctor_id)

        if time not in self.directory.get_available_slots(doctor_id, date):
            raise ValidationError("The selected slot is not available.")

        if self.ledger.find_booked_for_patient(patient_id, date, time):
            raise ConflictError(PATIENT_CONFLICT)

        if self.ledger.find_booked_for_doctor(doctor_id, date, time):
            raise ConflictError(SLOT_CONFLICT)

        appointment = self.ledger.insert(patient_id, doctor_id, date, time)
        logger.info(
            f"Appointment {appointment.id} booked: patient={patient_id} doctor={doctor_id} {date} {time}"
        )
        return appointment

    def cancel_appointment(self, requester_id: int, appointment_id: int) -> Appointment:
        appointment = self.ledger.get(appointment_id)

        if not appointment:
            raise NotFoundError("Appointment not found.")

        if appointment.patient_id != requester_id:
            raise AuthorizationError("You can only cancel your own appointments.")

        if appointment.status == AppointmentStatus.CANCELLED:
            raise ValidationError("Appointment is already cancelled.")

        if not self.ledger.mark_cancelled(appointment):
            logger.warning(f"Appointment {appointment.id} was cancelled concurrently")
            raise ValidationError("Appointment is already cancelled.")

        logger.info(f"Appointment {appointment.id} cancelled by patient {requester_id}")
        return appointment

    def list_for_patient(self, patient_id: int) -> List[PatientAppointmentResponse]:
        return [
            PatientAppointmentResponse(**self._fields(appointment), doctor_name=doctor_name)
            for appointment, doctor_name in self.ledger.for_patient(patient_id)
        ]

    def list_for_doctor(self, doctor_user_id: int) -> List[DoctorAppointmentResponse]:
        profile = self.directory.get_profile_for_account(doctor_user_id)
        return [
            DoctorAppointmentResponse(**self._fields(appointment), patient_name=patient_name)
            for appointment, patient_name in self.ledger.for_doctor(profile.id)
        ]

    @staticmethod
    def _fields(appointment: Appointment) -> dict:
        return AppointmentResponse.model_validate(appointment).model_dump()
