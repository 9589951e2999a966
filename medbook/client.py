"""
HTTP client for the MedBook API.

The logged-in user is held in an explicit ``ClientSession``. A
``SessionStore`` persists it between runs: it is loaded once when the client
starts (``MedbookClient.from_store``), saved on register/login and cleared on
logout. Nothing else reads or writes it.
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


@dataclass
class ClientSession:
    user_id: int
    name: str
    email: str
    role: str
    token: str

    @property
    def is_doctor(self) -> bool:
        return self.role == "doctor"

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


class SessionStore:
    """JSON file holding the current client session."""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> Optional[ClientSession]:
        if not self.path.exists():
            return None
        try:
            return ClientSession(**json.loads(self.path.read_text()))
        except (ValueError, TypeError):
            logger.warning(f"Ignoring unreadable session file {self.path}")
            return None

    def save(self, session: ClientSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(session)))

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class MedbookClient:
    def __init__(
        self,
        http: httpx.Client,
        session: Optional[ClientSession] = None,
        store: Optional[SessionStore] = None,
        prefix: str = "/api/v1"
    ):
        self.http = http
        self.session = session
        self.store = store
        self.prefix = prefix

    @classmethod
    def from_store(cls, http: httpx.Client, store: SessionStore, **kwargs) -> "MedbookClient":
        return cls(http, session=store.load(), store=store, **kwargs)

    # Authentication
    def register(self, name: str, email: str, password: str, role: str = "patient",
                 specialization: Optional[str] = None) -> ClientSession:
        data = self._request("POST", "/auth/register", auth=False, json={
            "name": name,
            "email": email,
            "password": password,
            "role": role,
            "specialization": specialization,
        })
        return self._start_session(data)

    def login(self, email: str, password: str) -> ClientSession:
        data = self._request("POST", "/auth/login", auth=False, json={
            "email": email,
            "password": password,
        })
        return self._start_session(data)

    def logout(self) -> None:
        self.session = None
        if self.store:
            self.store.clear()

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/me")

    # Doctors
    def list_doctors(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/doctors", auth=False)

    def get_slots(self, doctor_id: int, date: str) -> List[str]:
        data = self._request("GET", f"/doctors/{doctor_id}/slots", auth=False, params={"date": date})
        return data["slots"]

    def set_availability(self, date: str, slots: List[str]) -> List[Dict[str, Any]]:
        data = self._request("PUT", "/doctors/availability", json={"date": date, "slots": slots})
        return data["availability"]

    # Appointments
    def book_appointment(self, doctor_id: int, date: str, time: str) -> Dict[str, Any]:
        data = self._request("POST", "/appointments", json={
            "doctor_id": doctor_id,
            "date": date,
            "time": time,
        })
        return data["appointment"]

    def cancel_appointment(self, appointment_id: int) -> Dict[str, Any]:
        data = self._request("PUT", f"/appointments/{appointment_id}/cancel")
        return data["appointment"]

    def patient_appointments(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/appointments/patient")

    def doctor_appointments(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/appointments/doctor")

    def _start_session(self, data: Dict[str, Any]) -> ClientSession:
        self.session = ClientSession(
            user_id=data["id"],
            name=data["name"],
            email=data["email"],
            role=data["role"],
            token=data["token"],
        )
        if self.store:
            self.store.save(self.session)
        return self.session

    def _request(self, method: str, path: str, auth: bool = True, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if auth:
            if not self.session:
                raise ApiError(401, "Not logged in")
            headers.update(self.session.auth_headers())

        response = self.http.request(method, f"{self.prefix}{path}", headers=headers, **kwargs)

        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = None
            if isinstance(body, dict):
                detail = body.get("detail") or body.get("message")
            raise ApiError(response.status_code, detail or response.text)

        return response.json()
