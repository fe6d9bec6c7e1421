"""
Domain exceptions for yard operations.

Services raise these; ``yardgate.main`` maps them to HTTP responses.
Every failure leaves the stored state as it was before the call.
"""
from typing import Optional


class YardError(Exception):
    """Base class for all yard domain errors."""
    status_code = 400

    def __init__(self, message: str, *, truck_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.truck_id = truck_id


class ValidationFailedError(YardError):
    """Input rejected before any write (missing field, bad quantity, unknown dock)."""
    status_code = 400


class PreconditionFailedError(YardError):
    """A lifecycle gate is not satisfied or the transition is illegal from the current state."""
    status_code = 422


class NotFoundError(YardError):
    """Truck, approval request or dock no longer exists."""
    status_code = 404


class ConflictError(YardError):
    """The record moved since it was read, or a unique slot is already taken."""
    status_code = 409


class ApprovalAlreadyDecidedError(ConflictError):
    """An approval request may be resolved exactly once."""


class AuthorizationError(YardError):
    """The acting user lacks the role required for the action."""
    status_code = 403


class PersistenceError(YardError):
    """The database call failed; the operation did not happen."""
    status_code = 503
