from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import create_user_token
from ...api.deps import get_current_user, rate_limit_check
from ...services.account_service import AccountService
from ...schemas.auth import (
    UserLogin, UserRegister, UserResponse, AuthResponse, ChangePassword
)
from ...models.user import User

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        token=create_user_token(user.id, user.email, user.role)
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a new patient or doctor."""
    account_service = AccountService(db)
    user = account_service.register(
        name=user_data.name,
        email=user_data.email,
        password=user_data.password,
        role=user_data.role,
        specialization=user_data.specialization
    )
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Authenticate user and return an access token."""
    account_service = AccountService(db)
    user = account_service.authenticate(login_data.email, login_data.password)
    return _auth_response(user)


@router.get("/me", response_model=UserResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return UserResponse.model_validate(current_user)


@router.post("/change-password")
def change_password(
    password_data: ChangePassword,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change user password."""
    AccountService(db).change_password(
        current_user,
        password_data.current_password,
        password_data.new_password
    )
    return {"message": "Password changed successfully"}
