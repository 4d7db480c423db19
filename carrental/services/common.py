"""Shared service helpers and factories."""

from datetime import date, datetime
from typing import Optional

from carrental.exceptions import InvalidDateRangeError
from carrental.models.availability import Booking, DateRange, UnavailabilityBlock
from carrental.models.store import Store
from carrental.models.user import ROLE_CLASSES, CustomerUser, UserBase
from carrental.models.vehicle import Vehicle
from carrental.utils.filters import local_today


def _store() -> Store:
    """Get the singleton store instance."""
    return Store.instance()


def _today() -> date:
    """Wrapper for easier testing/mocking."""
    return local_today()


# -------- date & math helpers --------
def as_date(x) -> date:
    """Coerce any date-like to a naive date (supports 'YYYY-MM-DD' or ISO with T)."""
    if isinstance(x, datetime):
        return x.date()
    if isinstance(x, date):
        return x
    if isinstance(x, str):
        return date.fromisoformat(x.split("T", 1)[0].strip())
    raise ValueError(f"Unsupported date: {x!r}")


def parse_range(start, end) -> DateRange:
    """Parse two date-likes into a DateRange; raise InvalidDateRangeError on bad input."""
    if not start or not end:
        raise InvalidDateRangeError("Start and end dates are required (YYYY-MM-DD)")
    try:
        return DateRange(as_date(start), as_date(end))
    except ValueError:
        raise InvalidDateRangeError("Invalid dates (YYYY-MM-DD)")


def round2(x: float) -> float:
    return round(float(x), 2)


def to_float_safe(value) -> Optional[float]:
    """Safely convert to float; return None if invalid."""
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int_safe(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _lc(s):
    """Safe lowercase for case-insensitive compare."""
    return _text(s).lower()


def _text(value) -> str:
    """Stripped string form of a request field; None becomes ''."""
    if value is None:
        return ""
    return str(value).strip()


# -------- dict -> rich model mappers --------
def user_from_dict(d: Optional[dict]) -> Optional[UserBase]:
    """Map a stored user dict to a rich user object."""
    if not d:
        return None
    role = (d.get("role") or "").lower()
    cls = ROLE_CLASSES.get(role, CustomerUser)
    return cls(
        user_id=d.get("user_id"),
        username=d.get("username"),
        role=role,
        email=d.get("email"),
        name=d.get("name"),
    )


def vehicle_from_dict(d: Optional[dict]) -> Optional[Vehicle]:
    """Map a stored vehicle dict to a rich vehicle object."""
    if not d:
        return None
    return Vehicle(
        vehicle_id=d.get("vehicle_id"),
        make=d.get("make") or "",
        model=d.get("model") or "",
        price_per_day=float(d.get("price_per_day") or 0.0),
        year=d.get("year"),
        status=d.get("status") or "active",
        min_days=d.get("min_days"),
        max_days=d.get("max_days"),
    )


def booking_from_dict(d: dict) -> Booking:
    return Booking(
        id=d["booking_id"],
        car_id=d["vehicle_id"],
        user_id=d.get("user_id"),
        range=DateRange(as_date(d["start_date"]), as_date(d["end_date"])),
        status=d.get("status") or "pending",
    )


def block_from_dict(d: dict) -> UnavailabilityBlock:
    return UnavailabilityBlock(
        id=d["block_id"],
        car_id=d["vehicle_id"],
        range=DateRange(as_date(d["start_date"]), as_date(d["end_date"])),
        reason=d.get("reason"),
        type=d.get("type"),
    )


def vehicle_calendar(st: Store, vehicle_id: str, exclude_booking: Optional[str] = None):
    """Load a vehicle's bookings and blocks as engine objects."""
    bookings = [booking_from_dict(b) for b in st.bookings_for_vehicle(vehicle_id)
                if b.get("booking_id") != exclude_booking]
    blocks = [block_from_dict(b) for b in st.blocks_for_vehicle(vehicle_id)]
    return bookings, blocks
