# ordertrack/errors.py
"""
Typed failures raised by the domain layer.

Each class carries the HTTP status and error code the API boundary uses
when it renders the error envelope; services never build responses.
"""
from __future__ import annotations

from typing import List, Optional


class OrderTrackError(Exception):
    status_code = 500
    error_code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors) if errors else []


class InvalidInputError(OrderTrackError):
    status_code = 400
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Validation failed!", errors: Optional[List[str]] = None):
        super().__init__(message, errors or [message])


class UnauthorizedError(OrderTrackError):
    status_code = 401
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(OrderTrackError):
    status_code = 403
    error_code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(OrderTrackError):
    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class ConflictError(OrderTrackError):
    status_code = 409
    error_code = "CONFLICT"

    def __init__(self, message: str):
        super().__init__(message, [message])


class EmailAlreadyRegisteredError(ConflictError):
    # registration reports duplicates as a plain validation failure
    status_code = 400

    def __init__(self, message: str = "User already exists with this email"):
        super().__init__(message)


class TrackingNumberTaken(Exception):
    """Raised by an order repository when the generated tracking number collides."""
