from pydantic import BaseModel, EmailStr
from typing import List


class AvailabilityUpdate(BaseModel):
    date: str
    slots: List[str]


class AvailabilityDay(BaseModel):
    date: str
    slots: List[str]

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    message: str
    availability: List[AvailabilityDay]


class AccountSummary(BaseModel):
    id: int
    name: str
    email: EmailStr

    class Config:
        from_attributes = True


class DoctorResponse(BaseModel):
    id: int
    user_id: int
    specialization: str
    availability: List[AvailabilityDay]
    account: AccountSummary


class SlotsResponse(BaseModel):
    doctor_id: int
    date: str
    slots: List[str]
