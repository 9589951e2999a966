from .user import User
from .doctor import DoctorProfile, DoctorAvailability
from .appointment import Appointment, AppointmentStatus

__all__ = [
    "User",
    "DoctorProfile",
    "DoctorAvailability",
    "Appointment",
    "AppointmentStatus",
]
