"""Typed errors raised by the service layer.

Each error carries a stable machine-readable ``code`` and the HTTP status the
API maps it to. Routers let these propagate; ``libs.common.error_handler``
turns them into JSON responses.
"""

from typing import Optional


class AppError(Exception):
    """Base class for domain errors."""

    code: str = "APP_ERROR"
    status_code: int = 400

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        body = {"detail": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class InvalidInput(AppError):
    """Malformed or missing required fields."""

    code = "INVALID_INPUT"
    status_code = 400


class NotFound(AppError):
    """Referenced entity does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class Unavailable(AppError):
    """Entity exists but is not eligible (e.g. unpublished product)."""

    code = "UNAVAILABLE"
    status_code = 409


class InsufficientStock(AppError):
    """Requested quantity exceeds available stock."""

    code = "INSUFFICIENT_STOCK"
    status_code = 409


class StateConflict(AppError):
    """A state transition guard failed."""

    code = "STATE_CONFLICT"
    status_code = 409


class Unauthorized(AppError):
    code = "UNAUTHORIZED"
    status_code = 401


class Forbidden(AppError):
    code = "FORBIDDEN"
    status_code = 403
