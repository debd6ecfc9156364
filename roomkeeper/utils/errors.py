"""
Error taxonomy for the reservation engine.

Every error carries a machine readable ``error_code`` and a ``details`` dict
(conflicting reservation, check-in window, alternatives...) so the caller can
retry or pick another slot. Only ServiceError is safe to retry automatically.
"""


class ReservationError(Exception):
    status_code = 400
    retryable = False

    def __init__(self, message, error_code=None, details=None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self):
        payload = {
            'error': self.message,
            'code': self.error_code,
            'retryable': self.retryable,
        }
        payload.update(self.details)
        return payload


class ValidationError(ReservationError):
    """Malformed input."""
    status_code = 400


class NotFoundError(ReservationError):
    status_code = 404


class PolicyViolation(ReservationError):
    """Outside operating hours, over a booking-rule limit, or room unavailable."""
    status_code = 422


class ConflictError(ReservationError):
    """Overlapping interval, including a lost creation race."""
    status_code = 409


class StateError(ReservationError):
    """Transition not allowed from the reservation's current state."""
    status_code = 409


class AuthorizationError(ReservationError):
    status_code = 403


class ServiceError(ReservationError):
    status_code = 503
    retryable = True
