# carrental/utils/constants.py

"""
Global constants for roles, statuses, rejection reasons and tariffs.
These constants are imported by models, services and controllers.
"""

# Rental duration policy when a vehicle does not declare its own
DEFAULT_MIN_DAYS = 1
DEFAULT_MAX_DAYS = 30


class Role:
    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"

    ALL = (ADMIN, STAFF, CUSTOMER)
    BACK_OFFICE = (ADMIN, STAFF)


class BookingStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    REJECTED = "rejected"

    ALL = (PENDING, CONFIRMED, CANCELLED, COMPLETED, REJECTED)
    # only these block new bookings
    ACTIVE = frozenset({PENDING, CONFIRMED})
    FINAL = frozenset({CANCELLED, COMPLETED, REJECTED})


# pending -> confirmed/rejected/cancelled, confirmed -> cancelled/completed
BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.REJECTED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.REJECTED: frozenset(),
}


class PaymentStatus:
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"

    ALL = (PENDING, PAID, FAILED)


class BookingSource:
    ONLINE = "online"
    MANUAL = "manual"


class VehicleStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"

    ALL = (ACTIVE, INACTIVE, MAINTENANCE)


class BlockType:
    MAINTENANCE = "maintenance"
    RESERVED = "reserved"
    OTHER = "other"

    ALL = (MAINTENANCE, RESERVED, OTHER)


# Origin tags for blocked ranges handed to calendars
BLOCK_ORIGIN_BOOKING = "booking"


class MaintenanceStatus:
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    FIXED = "fixed"

    ALL = (PENDING, IN_PROGRESS, FIXED)
    OPEN = frozenset({PENDING, IN_PROGRESS})


class RejectionReason:
    INVALID_RANGE = "invalid_range"
    DURATION_OUT_OF_BOUNDS = "duration_out_of_bounds"
    DATE_CONFLICT = "date_conflict"
    ALREADY_FINALIZED = "already_finalized"
    PAST_START = "past_start"
    STORAGE_CONFLICT = "storage_conflict"
    NOTE_REQUIRED = "note_required"
    INVALID_TRANSITION = "invalid_transition"
    VEHICLE_UNAVAILABLE = "vehicle_unavailable"
    NOT_PAID = "not_paid"


class NotificationType:
    BOOKING_CREATED = "booking_created"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_COMPLETED = "booking_completed"
    PAYMENT_RECEIVED = "payment_received"
    MAINTENANCE_DUE = "maintenance_due"
    GENERAL = "general"


# --- Add-on tariff ---
ADDON_PRICES = {
    "driver": 35.0,          # per day
    "extra_km": 0.25,        # per km
    "delivery": 50.0,        # flat
    "child_seat": 10.0,      # per seat per day
    "gps_navigation": 8.0,   # per day
    "insurance_basic": 15.0,  # per day
    "insurance_full": 30.0,  # per day
}

# --- Misc ---
TRANSMISSIONS = {"manual", "automatic"}
