from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, JSON, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base


class DoctorProfile(Base):
    __tablename__ = "doctor_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    specialization = Column(String(100), nullable=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="doctor_profile")
    availability = relationship(
        "DoctorAvailability",
        back_populates="doctor",
        order_by="DoctorAvailability.date",
        cascade="all, delete-orphan"
    )
    appointments = relationship("Appointment", back_populates="doctor")

    def __repr__(self):
        return f"<DoctorProfile(id={self.id}, user_id={self.user_id}, specialization='{self.specialization}')>"


class DoctorAvailability(Base):
    """The slots a doctor offers on one calendar date."""
    __tablename__ = "doctor_availability"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctor_profiles.id"), nullable=False)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    slots = Column(JSON, nullable=False, default=list)  # sorted ["HH:MM", ...]

    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("DoctorProfile", back_populates="availability")

    __table_args__ = (
        UniqueConstraint("doctor_id", "date", name="uq_doctor_availability_date"),
    )

    def __repr__(self):
        return f"<DoctorAvailability(doctor_id={self.doctor_id}, date='{self.date}', slots={self.slots})>"
