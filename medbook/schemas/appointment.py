from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from ..models.appointment import AppointmentStatus


class AppointmentCreate(BaseModel):
    doctor_id: int
    date: str
    time: str


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    date: str = Field(validation_alias="appointment_date")
    time: str = Field(validation_alias="appointment_time")
    status: AppointmentStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        populate_by_name = True


class PatientAppointmentResponse(AppointmentResponse):
    doctor_name: str


class DoctorAppointmentResponse(AppointmentResponse):
    patient_name: str


class AppointmentEnvelope(BaseModel):
    message: str
    appointment: AppointmentResponse
