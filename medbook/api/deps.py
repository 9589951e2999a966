from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.exceptions import AuthorizationError
from ..core.security import security, verify_token, AuthenticationError, TokenPayload
from ..models.user import User


async def get_current_user_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenPayload:
    """Extract and verify JWT token from Authorization header."""
    if not credentials:
        raise AuthenticationError("Not authorized, no token")

    token_payload = verify_token(credentials.credentials)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload


def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    if not token_payload.sub:
        raise AuthenticationError("Invalid token payload")

    user = db.get(User, token_payload.sub)
    if not user:
        raise AuthenticationError("User not found")

    return user


def require_capability(capability: str):
    """Create a dependency that requires the user's role to grant ``capability``."""
    async def capability_checker(
        current_user: User = Depends(get_current_user)
    ) -> User:
        if not getattr(current_user.role, capability):
            raise AuthorizationError(
                f"Access denied for role '{current_user.role.value}'."
            )
        return current_user

    return capability_checker


async def get_doctor_user(
    current_user: User = Depends(require_capability("can_manage_availability"))
) -> User:
    """Require a role that manages availability (doctor)."""
    return current_user


async def get_patient_user(
    current_user: User = Depends(require_capability("can_book_appointments"))
) -> User:
    """Require a role that books appointments (patient)."""
    return current_user


# Rate limiting dependency
def rate_limit_check(
    request: Request,
    redis_client=Depends(get_redis)
) -> None:
    """Basic per-IP rate limiting for authentication endpoints."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, settings.RATE_LIMIT_WINDOW_SECONDS, 1)
    else:
        if int(current_requests) >= settings.RATE_LIMIT_REQUESTS:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
