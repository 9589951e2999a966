from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as SchemaValidationError
from typing import Optional, Union
import logging

from ..core.config import settings
from ..core.exceptions import AuthError, ConflictError, NotFoundError, ValidationError
from ..core.security import UserRole, get_password_hash, verify_password
from ..models.doctor import DoctorProfile
from ..models.user import User

logger = logging.getLogger(__name__)

email_adapter = TypeAdapter(EmailStr)


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def validate_email(email: str) -> str:
    """Check the address with pydantic's email validator and return it normalized."""
    try:
        return normalize_email(email_adapter.validate_python(email))
    except SchemaValidationError:
        raise ValidationError("Please provide a valid email address.")


def parse_role(role: Union[UserRole, str, None]) -> UserRole:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole((role or "").strip().lower())
    except ValueError:
        raise ValidationError("Role must be either 'patient' or 'doctor'.")


class AccountService:
    """Identity store: account registration and credential checks."""

    def __init__(self, db: Session):
        self.db = db

    def register(
        self,
        name: str,
        email: str,
        password: str,
        role: Union[UserRole, str],
        specialization: Optional[str] = None
    ) -> User:
        """Register a new account.

        A doctor account is created together with its (empty) doctor profile in
        a single transaction, so a failed profile leaves no account behind.
        """
        name = (name or "").strip()
        email = normalize_email(email)
        specialization = (specialization or "").strip()

        if not name or not email or not password or not role:
            raise ValidationError("Please include all required fields.")

        role = parse_role(role)
        email = validate_email(email)

        self._check_password_strength(password)

        if role is UserRole.DOCTOR and not specialization:
            raise ValidationError("Specialization is required for doctors.")

        if self.find_by_email(email):
            raise ConflictError("User already exists.")

        user = User(
            name=name,
            email=email,
            password_hash=get_password_hash(password),
            role=role
        )

        try:
            self.db.add(user)
            self.db.flush()

            if role is UserRole.DOCTOR:
                self.db.add(DoctorProfile(user_id=user.id, specialization=specialization))

            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Registration raced on existing email {email}")
            raise ConflictError("User already exists.")
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(user)
        logger.info(f"Registered {role.value} account id={user.id}")
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Return the account matching the credentials."""
        user = self.find_by_email(email)

        if not user or not password or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt")
            raise AuthError("Invalid credentials.")

        return user

    def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise AuthError("Current password is incorrect.")

        self._check_password_strength(new_password)

        user.password_hash = get_password_hash(new_password)
        self.db.commit()
        logger.info(f"Password changed for account id={user.id}")

    def get(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found.")
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(
            User.email == normalize_email(email)
        ).first()

    @staticmethod
    def _check_password_strength(password: str):
        if not password or len(password) < settings.PASSWORD_MIN_LENGTH:
            raise ValidationError(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long."
            )
