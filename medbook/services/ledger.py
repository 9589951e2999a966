from sqlalchemy.orm import Session, aliased
from sqlalchemy.exc import IntegrityError
from typing import List, Optional, Tuple
import logging

from ..core.exceptions import ConflictError
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import DoctorProfile
from ..models.user import User

logger = logging.getLogger(__name__)

PATIENT_CONFLICT = "You already have an appointment at this time."
SLOT_CONFLICT = "This slot is already taken by another patient."


class AppointmentLedger:
    """Storage access for appointment rows.

    Slot exclusivity is enforced by the partial unique indexes on
    ``appointments``; ``insert`` turns a violation of either index into a
    ``ConflictError`` naming the rule that was hit.
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, appointment_id: int) -> Optional[Appointment]:
        return self.db.get(Appointment, appointment_id)

    def find_booked_for_patient(self, patient_id: int, date: str, time: str) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.patient_id == patient_id,
            Appointment.appointment_date == date,
            Appointment.appointment_time == time,
            Appointment.status == AppointmentStatus.BOOKED
        ).first()

    def find_booked_for_doctor(self, doctor_id: int, date: str, time: str) -> Optional[Appointment]:
        return self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == date,
            Appointment.appointment_time == time,
            Appointment.status == AppointmentStatus.BOOKED
        ).first()

    def insert(self, patient_id: int, doctor_id: int, date: str, time: str) -> Appointment:
        appointment = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date=date,
            appointment_time=time,
            status=AppointmentStatus.BOOKED
        )

        try:
            self.db.add(appointment)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            # The losing writer sees the winner's committed row
            if self.find_booked_for_patient(patient_id, date, time):
                message = PATIENT_CONFLICT
            else:
                message = SLOT_CONFLICT
            logger.warning(
                f"Concurrent booking rejected for doctor={doctor_id} {date} {time}: {message}"
            )
            raise ConflictError(message)

        self.db.refresh(appointment)
        return appointment

    def mark_cancelled(self, appointment: Appointment) -> bool:
        """Move a booked appointment to cancelled.

        The status check is part of the UPDATE, so of two concurrent cancels
        only one matches the row. Returns False when it was no longer booked.
        """
        updated = self.db.query(Appointment).filter(
            Appointment.id == appointment.id,
            Appointment.status == AppointmentStatus.BOOKED
        ).update(
            {Appointment.status: AppointmentStatus.CANCELLED},
            synchronize_session=False
        )
        self.db.commit()
        self.db.refresh(appointment)
        return updated == 1

    def for_patient(self, patient_id: int) -> List[Tuple[Appointment, str]]:
        """Patient's appointments paired with the doctor's display name."""
        doctor_user = aliased(User)
        return self.db.query(Appointment, doctor_user.name).join(
            DoctorProfile, Appointment.doctor_id == DoctorProfile.id
        ).join(
            doctor_user, DoctorProfile.user_id == doctor_user.id
        ).filter(
            Appointment.patient_id == patient_id
        ).order_by(
            Appointment.appointment_date, Appointment.appointment_time, Appointment.id
        ).all()

    def for_doctor(self, doctor_id: int) -> List[Tuple[Appointment, str]]:
        """Doctor profile's appointments paired with the patient's display name."""
        return self.db.query(Appointment, User.name).join(
            User, Appointment.patient_id == User.id
        ).filter(
            Appointment.doctor_id == doctor_id
        ).order_by(
            Appointment.appointment_date, Appointment.appointment_time, Appointment.id
        ).all()
