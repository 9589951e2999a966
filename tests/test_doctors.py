import pytest
from sqlalchemy.exc import IntegrityError

from medbook.core.exceptions import NotFoundError, ValidationError
from medbook.core.security import UserRole, get_password_hash
from medbook.models.doctor import DoctorAvailability
from medbook.models.user import User
from medbook.services.account_service import AccountService
from medbook.services.doctor_service import DoctorService, normalize_slots, normalize_time

from .conftest import TestingSessionLocal


@pytest.fixture
def doctor(db):
    return AccountService(db).register(
        name="Dr. A", email="dra@example.com", password="secret123",
        role=UserRole.DOCTOR, specialization="Cardiology"
    )


class TestSlotNormalization:

    def test_pads_hours(self):
        assert normalize_time(" 9:00 ") == "09:00"

    @pytest.mark.parametrize("value", ["24:00", "09:60", "nine", "0900", ""])
    def test_rejects_bad_times(self, value):
        with pytest.raises(ValidationError):
            normalize_time(value)

    def test_drops_duplicates_and_sorts(self):
        assert normalize_slots(["10:00", "09:00", "9:00"]) == ["09:00", "10:00"]


class TestDoctorService:

    def test_set_then_get_returns_exact_slots(self, db, doctor):
        service = DoctorService(db)
        profile = service.get_profile_for_account(doctor.id)

        service.set_availability(doctor.id, "2025-03-01", ["09:00", "10:00"])

        assert service.get_available_slots(profile.id, "2025-03-01") == ["09:00", "10:00"]

    def test_set_availability_replaces_instead_of_merging(self, db, doctor):
        service = DoctorService(db)
        profile = service.get_profile_for_account(doctor.id)

        service.set_availability(doctor.id, "2025-03-01", ["09:00", "10:00"])
        days = service.set_availability(doctor.id, "2025-03-01", ["14:00"])

        assert service.get_available_slots(profile.id, "2025-03-01") == ["14:00"]
        assert [(d.date, d.slots) for d in days] == [("2025-03-01", ["14:00"])]

    def test_dates_are_independent(self, db, doctor):
        service = DoctorService(db)
        profile = service.get_profile_for_account(doctor.id)

        service.set_availability(doctor.id, "2025-03-02", ["11:00"])
        days = service.set_availability(doctor.id, "2025-03-01", ["09:00"])

        assert [d.date for d in days] == ["2025-03-01", "2025-03-02"]
        assert service.get_available_slots(profile.id, "2025-03-02") == ["11:00"]

    def test_no_entry_means_no_slots(self, db, doctor):
        service = DoctorService(db)
        profile = service.get_profile_for_account(doctor.id)

        assert service.get_available_slots(profile.id, "2030-01-01") == []

    @pytest.mark.parametrize("date, slots", [
        ("", ["09:00"]),
        ("2025-03-01", []),
        ("2025-02-30", ["09:00"]),
        ("01/03/2025", ["09:00"]),
        ("2025-03-01", ["25:00"]),
    ])
    def test_invalid_availability(self, db, doctor, date, slots):
        with pytest.raises(ValidationError):
            DoctorService(db).set_availability(doctor.id, date, slots)

    def test_account_without_profile(self, db):
        orphan = User(
            name="No Profile", email="noprofile@example.com",
            password_hash=get_password_hash("secret123"), role=UserRole.DOCTOR
        )
        db.add(orphan)
        db.commit()

        with pytest.raises(NotFoundError):
            DoctorService(db).set_availability(orphan.id, "2025-03-01", ["09:00"])

    def test_unknown_doctor_slots(self, db):
        with pytest.raises(NotFoundError):
            DoctorService(db).get_available_slots(12345, "2025-03-01")

    def test_concurrent_save_of_same_date_keeps_later_write(self, db, doctor, monkeypatch):
        profile_id = DoctorService(db).get_profile_for_account(doctor.id).id
        real_commit = db.commit
        calls = []

        def commit_after_competing_save():
            if not calls:
                other = TestingSessionLocal()
                try:
                    other.add(DoctorAvailability(doctor_id=profile_id, date="2025-03-01", slots=["08:00"]))
                    other.commit()
                finally:
                    other.close()
            calls.append(True)
            real_commit()

        monkeypatch.setattr(db, "commit", commit_after_competing_save)

        days = DoctorService(db).set_availability(doctor.id, "2025-03-01", ["09:00"])

        assert len(calls) == 2
        assert [(day.date, day.slots) for day in days] == [("2025-03-01", ["09:00"])]

    def test_unrelated_integrity_error_is_raised(self, db, doctor, monkeypatch):
        """Without a competing row for the date there is nothing to retry against."""
        def failing_commit():
            raise IntegrityError("INSERT INTO doctor_availability", {}, Exception("constraint failed"))

        monkeypatch.setattr(db, "commit", failing_commit)

        with pytest.raises(IntegrityError):
            DoctorService(db).set_availability(doctor.id, "2025-03-01", ["09:00"])

        check = TestingSessionLocal()
        try:
            assert check.query(DoctorAvailability).count() == 0
        finally:
            check.close()


class TestDoctorEndpoints:

    def test_list_doctors_is_public(self, client, test_db, register_user):
        register_user("Dr. A", "dra@example.com", role="doctor", specialization="Cardiology")
        register_user("Dr. B", "drb@example.com", role="doctor", specialization="Dermatology")
        register_user("Patient", "p1@example.com")

        response = client.get("/api/v1/doctors")
        assert response.status_code == 200

        doctors = response.json()
        assert [d["account"]["name"] for d in doctors] == ["Dr. A", "Dr. B"]
        assert {"id", "user_id", "specialization", "availability", "account"} <= set(doctors[0])

    def test_update_availability(self, client, test_db, register_user, headers):
        doctor = register_user("Dr. A", "dra@example.com", role="doctor", specialization="Cardiology")

        response = client.put(
            "/api/v1/doctors/availability",
            json={"date": "2025-03-01", "slots": ["10:00", "09:00"]},
            headers=headers(doctor)
        )
        assert response.status_code == 200
        assert response.json()["availability"] == [{"date": "2025-03-01", "slots": ["09:00", "10:00"]}]

        doctor_id = client.get("/api/v1/doctors").json()[0]["id"]
        slots = client.get(f"/api/v1/doctors/{doctor_id}/slots", params={"date": "2025-03-01"})
        assert slots.status_code == 200
        assert slots.json() == {"doctor_id": doctor_id, "date": "2025-03-01", "slots": ["09:00", "10:00"]}

    def test_update_availability_requires_slots(self, client, test_db, register_user, headers):
        doctor = register_user("Dr. A", "dra@example.com", role="doctor", specialization="Cardiology")

        response = client.put(
            "/api/v1/doctors/availability",
            json={"date": "2025-03-01", "slots": []},
            headers=headers(doctor)
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Date and slots are required."

    def test_patient_cannot_update_availability(self, client, test_db, register_user, headers):
        patient = register_user("Patient", "p1@example.com")

        response = client.put(
            "/api/v1/doctors/availability",
            json={"date": "2025-03-01", "slots": ["09:00"]},
            headers=headers(patient)
        )
        assert response.status_code == 403

    def test_update_availability_requires_token(self, client, test_db):
        response = client.put("/api/v1/doctors/availability", json={"date": "2025-03-01", "slots": ["09:00"]})
        assert response.status_code == 401

    def test_slots_for_unknown_doctor(self, client, test_db):
        response = client.get("/api/v1/doctors/999/slots", params={"date": "2025-03-01"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Doctor not found."
