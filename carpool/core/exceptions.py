"""
Domain Exceptions

Every error the services raise derives from AppError and carries the
HTTP status it maps to. The handlers in carpool.main turn them into the
uniform `{"success": false, "message": ...}` envelope.
"""

from typing import Optional


class AppError(Exception):
    """Base class for errors that are safe to show to API clients."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed, missing or contradictory input."""
    status_code = 400
    default_message = "Invalid request data"


class InvalidCredentialError(AppError):
    """
    Bad login, or a wrong/expired/spent one-time passcode.

    Messages never say which part was wrong.
    """
    status_code = 400
    default_message = "Invalid or expired OTP"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Not authorized"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Not authorized to perform this action"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    # Duplicates are reported as a plain bad request
    status_code = 400
    default_message = "Resource already exists"


class ServiceUnavailableError(AppError):
    """A downstream dependency (mail relay, database) failed."""
    status_code = 500
    default_message = "Service temporarily unavailable"
