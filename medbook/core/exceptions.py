"""
Domain errors raised by the service layer.

Each error carries a user-facing message and the HTTP status the API reports
it with. The exception handler in ``medbook.main`` turns them into
``{"detail": message}`` responses.
"""

from fastapi import status


class MedbookError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MedbookError):
    """Missing or malformed input."""
    default_message = "Invalid input"


class ConflictError(MedbookError):
    """A uniqueness or slot exclusivity rule was violated."""
    default_message = "Conflicting record already exists"


class NotFoundError(MedbookError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class AuthorizationError(MedbookError):
    """The actor is not allowed to act on this record."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not allowed to perform this action"


class AuthError(MedbookError):
    """Bad credentials."""
    default_message = "Invalid credentials"
