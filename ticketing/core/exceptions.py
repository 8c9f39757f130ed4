"""
Domain exceptions.

Services raise these instead of HTTP errors; the API layer maps each one to a
status code and a short, stable message (see api/exception_handlers.py).
"""

from typing import Optional


class DomainError(Exception):
    status_code: int = 400
    # Message shown to clients for 5xx errors; details stay in the logs
    public_message: Optional[str] = None

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(DomainError):
    status_code = 400


class NotFoundError(DomainError):
    status_code = 404


class ForbiddenError(DomainError):
    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class ConflictError(DomainError):
    status_code = 409


class CapacityExceededError(DomainError):
    """Raised when a booking asks for more tickets than the event has left."""

    status_code = 400

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = max(available, 0)
        super().__init__(
            f"Not enough tickets available. Requested: {requested}, remaining: {self.available}"
        )


class GatewayError(DomainError):
    """The payment provider rejected or failed to answer a request."""

    status_code = 500
    public_message = "STK push failed"


class InternalError(DomainError):
    status_code = 500
    public_message = "Internal server error"
