"""
Application error taxonomy.

Every error carries a stable machine-readable `code` that clients branch on
(e.g. BOOTH_RESERVED vs INTERNAL_ERROR) and the HTTP status it maps to.
Exception handlers in `boothhub.api.exception_handlers` turn these into the
standard `{success, error, meta}` envelope.
"""

from typing import Any, Optional


class AppError(Exception):
    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid request"


class NotFound(AppError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class Unauthorized(AppError):
    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Authentication required"


class Forbidden(AppError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "Access denied"


class Conflict(AppError):
    code = "CONFLICT"
    status_code = 409
    default_message = "Resource already exists"


class BoothUnavailable(AppError):
    code = "BOOTH_UNAVAILABLE"
    status_code = 400
    default_message = "Booth is not available"


class BoothReserved(AppError):
    code = "BOOTH_RESERVED"
    status_code = 400
    default_message = "Booth is already reserved"


class ReservationExpired(AppError):
    code = "RESERVATION_EXPIRED"
    status_code = 400
    default_message = "Reservation has expired"


class InvalidReservationState(AppError):
    code = "INVALID_RESERVATION"
    status_code = 400
    default_message = "Reservation is not in pending status"


class PaymentNotCompleted(AppError):
    code = "PAYMENT_NOT_COMPLETED"
    status_code = 400
    default_message = "Payment has not completed"


class WebhookSignatureError(AppError):
    code = "INVALID_SIGNATURE"
    status_code = 400
    default_message = "Invalid webhook signature"


class ModuleDisabled(AppError):
    code = "MODULE_DISABLED"
    status_code = 503
    default_message = "Module is disabled"


class FeatureDisabled(AppError):
    code = "FEATURE_DISABLED"
    status_code = 503
    default_message = "Feature is disabled"


class PaymentProcessorError(AppError):
    """The external processor rejected or failed a call. Shown to clients as a 500."""

    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Payment processor error"


class InternalError(AppError):
    pass
