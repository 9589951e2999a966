from pydantic import BaseModel, EmailStr
from typing import Optional

from ..core.security import UserRole


class UserRegister(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: UserRole
    specialization: Optional[str] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class ChangePassword(BaseModel):
    current_password: str
    new_password: str


class UserResponse(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: UserRole

    class Config:
        from_attributes = True


class AuthResponse(UserResponse):
    """Account details plus the bearer token for subsequent requests."""
    token: str
