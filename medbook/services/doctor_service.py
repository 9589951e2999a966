from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy.exc import IntegrityError
from datetime import date as date_type
from typing import Iterable, List
import logging
import re

from ..core.exceptions import NotFoundError, ValidationError
from ..models.doctor import DoctorAvailability, DoctorProfile
from ..schemas.doctor import AccountSummary, AvailabilityDay, DoctorResponse

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def normalize_date(value: str) -> str:
    """Validate a YYYY-MM-DD calendar date and return it in canonical form."""
    value = (value or "").strip()
    if not value:
        raise ValidationError("Date is required.")
    try:
        return date_type.fromisoformat(value).isoformat()
    except ValueError:
        raise ValidationError(f"Invalid date '{value}'. Expected YYYY-MM-DD.")


def normalize_time(value: str) -> str:
    """Validate a 24-hour HH:MM time and return it zero-padded."""
    value = (value or "").strip()
    match = TIME_PATTERN.match(value)
    if not match:
        raise ValidationError(f"Invalid time '{value}'. Expected HH:MM.")

    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValidationError(f"Invalid time '{value}'. Expected HH:MM.")

    return f"{hour:02d}:{minute:02d}"


def normalize_slots(slots: Iterable[str]) -> List[str]:
    """Validate slot times, dropping duplicates. Returned sorted."""
    normalized = {normalize_time(slot) for slot in slots or []}
    if not normalized:
        raise ValidationError("At least one slot is required.")
    return sorted(normalized)


class DoctorService:
    """Doctor directory: profiles and per-date availability."""

    def __init__(self, db: Session):
        self.db = db

    def list_doctors(self) -> List[DoctorResponse]:
        profiles = self.db.query(DoctorProfile).options(
            joinedload(DoctorProfile.user),
            selectinload(DoctorProfile.availability)
        ).order_by(DoctorProfile.id).all()

        return [self._to_response(profile) for profile in profiles]

    def get_profile(self, doctor_id: int) -> DoctorProfile:
        profile = self.db.get(DoctorProfile, doctor_id)
        if not profile:
            raise NotFoundError("Doctor not found.")
        return profile

    def get_profile_for_account(self, user_id: int) -> DoctorProfile:
        profile = self.db.query(DoctorProfile).filter(
            DoctorProfile.user_id == user_id
        ).first()
        if not profile:
            raise NotFoundError("Doctor profile not found.")
        return profile

    def set_availability(self, user_id: int, date: str, slots: List[str]) -> List[AvailabilityDay]:
        """Replace the slots offered on ``date`` by the doctor owning ``user_id``."""
        if not (date or "").strip() or not slots:
            raise ValidationError("Date and slots are required.")

        date = normalize_date(date)
        slots = normalize_slots(slots)

        profile = self.get_profile_for_account(user_id)

        entry = self._find_day(profile.id, date)
        if entry:
            entry.slots = slots
        else:
            self.db.add(DoctorAvailability(doctor_id=profile.id, date=date, slots=slots))

        try:
            self.db.commit()
        except IntegrityError:
            # Same doctor saving the same date twice at once; the later write wins
            self.db.rollback()
            entry = self._find_day(profile.id, date)
            if entry is None:
                # Not the (doctor, date) race; nothing to retry against
                raise
            entry.slots = slots
            self.db.commit()

        self.db.refresh(profile)
        logger.info(f"Doctor {profile.id} set {len(slots)} slot(s) for {date}")

        return [AvailabilityDay.model_validate(day) for day in profile.availability]

    def get_available_slots(self, doctor_id: int, date: str) -> List[str]:
        """Slots the doctor offers on ``date``; empty when none were published."""
        self.get_profile(doctor_id)
        entry = self._find_day(doctor_id, normalize_date(date))
        return list(entry.slots) if entry else []

    def _find_day(self, doctor_id: int, date: str):
        return self.db.query(DoctorAvailability).filter(
            DoctorAvailability.doctor_id == doctor_id,
            DoctorAvailability.date == date
        ).first()

    @staticmethod
    def _to_response(profile: DoctorProfile) -> DoctorResponse:
        return DoctorResponse(
            id=profile.id,
            user_id=profile.user_id,
            specialization=profile.specialization,
            availability=[AvailabilityDay.model_validate(day) for day in profile.availability],
            account=AccountSummary.model_validate(profile.user)
        )
