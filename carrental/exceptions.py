"""
Custom exception classes for the car rental back end.

Every error carries a human message, a stable ``reason`` code and the HTTP
status the controllers answer with. Services raise them; the app factory
registers a single handler that turns them into JSON.
"""

from .utils.constants import RejectionReason


class RentalError(Exception):
    """Base class for all per-request failures of the rental domain."""

    reason = "error"
    status_code = 400
    default_message = "Error: request failed"

    def __init__(self, message: str | None = None, reason: str | None = None) -> None:
        self.message = message or self.default_message
        if reason is not None:
            self.reason = reason
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message

    def to_dict(self) -> dict:
        return {"error": self.message, "reason": self.reason}


# ---------------- lookups ----------------
class VehicleNotFoundError(RentalError):
    """Raised when a vehicle ID cannot be found in the system."""

    reason = "vehicle_not_found"
    status_code = 404
    default_message = "Error: vehicle not found"


class UserNotFoundError(RentalError):
    """Raised when a user ID cannot be found in the system."""

    reason = "user_not_found"
    status_code = 404
    default_message = "Error: user not found"


class BookingNotFoundError(RentalError):
    """Raised when a booking record cannot be found in the system."""

    reason = "booking_not_found"
    status_code = 404
    default_message = "Error: booking not found"


class RecordNotFoundError(RentalError):
    """Raised when a maintenance record, block or notification is missing."""

    reason = "record_not_found"
    status_code = 404
    default_message = "Error: record not found"


# ---------------- access ----------------
class AuthenticationError(RentalError):
    reason = "unauthorized"
    status_code = 401
    default_message = "Error: please login first"


class PermissionDeniedError(RentalError):
    """Raised when the caller's role or ownership does not allow the action."""

    reason = "forbidden"
    status_code = 403
    default_message = "Error: insufficient permission"


# ---------------- booking rules ----------------
class InvalidDateRangeError(RentalError):
    """Raised when end date is not after start date or a date cannot be parsed."""

    reason = RejectionReason.INVALID_RANGE
    default_message = "Error: invalid date range"


class DurationOutOfBoundsError(RentalError):
    """Raised when the rental length violates the vehicle's min/max day policy."""

    reason = RejectionReason.DURATION_OUT_OF_BOUNDS
    default_message = "Error: rental duration is outside the allowed range"


class DateConflictError(RentalError):
    """Raised when the requested dates overlap an existing booking or block."""

    reason = RejectionReason.DATE_CONFLICT
    status_code = 409
    default_message = "Error: selected dates overlap with existing bookings"


class AlreadyFinalizedError(RentalError):
    """Raised when a cancelled/completed/rejected booking is changed again."""

    reason = RejectionReason.ALREADY_FINALIZED
    default_message = "Error: booking already finalized"


class PastStartError(RentalError):
    """Raised when the booking's start date has already been reached."""

    reason = RejectionReason.PAST_START
    default_message = "Error: booking start date has passed"


class StorageConflictError(RentalError):
    """
    Raised by the store when an insert loses the race against a concurrent
    booking for the same vehicle. Clients should re-read availability.
    """

    reason = RejectionReason.STORAGE_CONFLICT
    status_code = 409
    default_message = "Error: vehicle was booked by another request, refresh availability"


class ReviewNotEligibleError(RentalError):
    """Raised when the caller has no completed booking of the car to review."""

    reason = "review_not_eligible"
    status_code = 403
    default_message = "Error: you can only review a car after completing a booking for it"


class DuplicateReviewError(RentalError):
    reason = "duplicate_review"
    status_code = 409
    default_message = "Error: you have already reviewed this booking"


class ValidationError(RentalError):
    """Raised for malformed input and state-machine violations."""

    reason = "validation_error"
    default_message = "Error: invalid input"


# reason code -> exception class, used when turning engine verdicts into errors
REASON_ERRORS = {
    RejectionReason.INVALID_RANGE: InvalidDateRangeError,
    RejectionReason.DURATION_OUT_OF_BOUNDS: DurationOutOfBoundsError,
    RejectionReason.DATE_CONFLICT: DateConflictError,
    RejectionReason.ALREADY_FINALIZED: AlreadyFinalizedError,
    RejectionReason.PAST_START: PastStartError,
    RejectionReason.STORAGE_CONFLICT: StorageConflictError,
}


def error_for(reason: str, message: str | None = None) -> RentalError:
    """Build the exception matching a rejection reason code."""
    cls = REASON_ERRORS.get(reason)
    if cls is None:
        return ValidationError(message, reason=reason)
    return cls(message)
