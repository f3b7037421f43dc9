"""
Typed service errors.

Services raise these instead of HTTPException so they stay usable outside the
request cycle; the API layer maps them to the JSON error envelope.
"""
from typing import Any, Optional


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class AuthenticationRequired(ServiceError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated", **kwargs):
        super().__init__(message, **kwargs)


class PermissionDenied(ServiceError):
    status_code = 403

    def __init__(self, message: str = "Insufficient permissions", **kwargs):
        super().__init__(message, **kwargs)


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class ValidationFailed(ServiceError):
    status_code = 400


class InvalidStateError(ServiceError):
    """Requested status transition is not allowed from the current state."""
    status_code = 400


class PaymentError(ServiceError):
    status_code = 400

    def __init__(self, message: str, **kwargs):
        if not message.startswith("Stripe error: "):
            message = f"Stripe error: {message}"
        super().__init__(message, **kwargs)


class ExternalServiceError(ServiceError):
    status_code = 500


__all__ = [
    "ServiceError",
    "AuthenticationRequired",
    "PermissionDenied",
    "NotFoundError",
    "ConflictError",
    "ValidationFailed",
    "InvalidStateError",
    "PaymentError",
    "ExternalServiceError",
]
