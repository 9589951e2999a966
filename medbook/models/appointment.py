from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Index, Enum as SQLEnum, text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base


class AppointmentStatus(str, enum.Enum):
    BOOKED = "booked"
    CANCELLED = "cancelled"


# Only active bookings take part in the exclusivity indexes
BOOKED_ONLY = text("status = 'booked'")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctor_profiles.id"), nullable=False, index=True)

    # Appointment details
    appointment_date = Column(String(10), nullable=False)  # YYYY-MM-DD
    appointment_time = Column(String(5), nullable=False)  # HH:MM
    status = Column(
        SQLEnum(AppointmentStatus, values_callable=lambda statuses: [s.value for s in statuses]),
        nullable=False,
        default=AppointmentStatus.BOOKED
    )

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("User", back_populates="appointments")
    doctor = relationship("DoctorProfile", back_populates="appointments")

    __table_args__ = (
        Index(
            "uq_appointments_doctor_slot_booked",
            "doctor_id", "appointment_date", "appointment_time",
            unique=True,
            postgresql_where=BOOKED_ONLY,
            sqlite_where=BOOKED_ONLY,
        ),
        Index(
            "uq_appointments_patient_slot_booked",
            "patient_id", "appointment_date", "appointment_time",
            unique=True,
            postgresql_where=BOOKED_ONLY,
            sqlite_where=BOOKED_ONLY,
        ),
    )

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, "
            f"date='{self.appointment_date}', time='{self.appointment_time}', status='{self.status}')>"
        )
