from typing import Optional


class BookingError(Exception):
    kind = "InternalError"
    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        return self.message


class NotFoundException(BookingError):
    kind = "NotFound"
    status_code = 404

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} '{identifier}' not found")


class Unauthenticated(BookingError):
    kind = "Unauthenticated"
    status_code = 401


class Unauthorized(BookingError):
    kind = "Unauthorized"
    status_code = 403


class InvalidStateTransition(BookingError):
    kind = "InvalidStateTransition"
    status_code = 409


class SchedulingConflict(BookingError):
    kind = "SchedulingConflict"
    status_code = 409


class OutOfServiceArea(BookingError):
    kind = "OutOfServiceArea"
    status_code = 422


class RateLimited(BookingError):
    kind = "RateLimited"
    status_code = 429

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Please wait {retry_after_seconds} seconds before requesting a new OTP",
            {"retry_after_seconds": retry_after_seconds},
        )


class InvalidOTP(BookingError):
    kind = "InvalidOTP"
    status_code = 400

    def __init__(self, message: str, attempts_remaining: Optional[int] = None):
        self.attempts_remaining = attempts_remaining
        details = None
        if attempts_remaining is not None:
            details = {"attempts_remaining": attempts_remaining}
        super().__init__(message, details)


class OTPExpired(BookingError):
    kind = "OTPExpired"
    status_code = 400


class AttemptsExceeded(BookingError):
    kind = "AttemptsExceeded"
    status_code = 400


class ValidationError(BookingError):
    kind = "ValidationError"
    status_code = 400


class OTPDeliveryFailed(BookingError):
    kind = "OTPDeliveryFailed"
    status_code = 502


class ConcurrentModification(Exception):
    """Raised by repositories when a conditional write loses a race."""

    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"booking '{booking_id}' was modified concurrently")


class SmsDeliveryError(Exception):
    pass
