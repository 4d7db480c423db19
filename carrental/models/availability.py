"""
Availability engine: date-range overlap, rental duration policy, blocked-range
listing and booking admission.

All ranges are calendar dates and end-exclusive: [start, end). The end date is
the return day and is free for the next pickup. Everything here is a pure
computation over data the caller already fetched; nothing touches the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Iterator, Optional

from ..utils.constants import (
    BLOCK_ORIGIN_BOOKING,
    BOOKING_TRANSITIONS,
    DEFAULT_MAX_DAYS,
    DEFAULT_MIN_DAYS,
    BlockType,
    BookingStatus,
    RejectionReason,
)


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @property
    def is_valid(self) -> bool:
        return self.end > self.start

    @property
    def days(self) -> int:
        """Rental length in whole days (end - start, no +1)."""
        return (self.end - self.start).days

    def overlaps(self, other: "DateRange") -> bool:
        return overlaps(self, other)

    def to_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class Booking:
    id: str
    car_id: str
    user_id: str
    range: DateRange
    status: str = BookingStatus.PENDING

    @property
    def is_active(self) -> bool:
        return self.status in BookingStatus.ACTIVE


@dataclass(frozen=True)
class UnavailabilityBlock:
    """Maintenance hold or manual block. Has no status and always blocks."""
    id: str
    car_id: str
    range: DateRange
    reason: Optional[str] = None
    type: Optional[str] = None


@dataclass(frozen=True)
class VehicleConstraints:
    min_days: Optional[int] = None
    max_days: Optional[int] = None

    @property
    def effective_min(self) -> int:
        return DEFAULT_MIN_DAYS if self.min_days is None else int(self.min_days)

    @property
    def effective_max(self) -> int:
        return DEFAULT_MAX_DAYS if self.max_days is None else int(self.max_days)


@dataclass(frozen=True)
class BlockedRange:
    range: DateRange
    type: str
    reason: Optional[str] = field(default=None)

    def to_dict(self) -> dict:
        out = {"from": self.range.start.isoformat(), "to": self.range.end.isoformat(), "type": self.type}
        if self.reason is not None:
            out["reason"] = self.reason
        return out


# ------------------------- primitives -------------------------
def overlaps(a: DateRange, b: DateRange) -> bool:
    """
    Check overlap between [a.start, a.end) and [b.start, b.end).
    Overlap rule: a.start < b.end and b.start < a.end
    """
    return a.start < b.end and b.start < a.end


def blockers_for(bookings: Iterable[Booking], blocks: Iterable[UnavailabilityBlock]) -> list[DateRange]:
    """
    Collect the ranges that prevent a new booking: active bookings plus every
    unavailability block. Cancelled, rejected and completed bookings never
    reach the overlap comparison. Empty or inverted ranges occupy no day and
    are skipped.
    """
    ranges = [b.range for b in bookings if b.is_active]
    ranges.extend(blk.range for blk in blocks)
    return [r for r in ranges if r.is_valid]


def is_range_free(candidate: DateRange, blockers: Iterable[DateRange]) -> bool:
    return not any(overlaps(candidate, b) for b in blockers)


def validate_duration(candidate: DateRange, min_days: Optional[int] = None, max_days: Optional[int] = None) -> bool:
    limits = VehicleConstraints(min_days, max_days)
    return limits.effective_min <= candidate.days <= limits.effective_max


class BlockedRanges:
    """
    Restartable view over the blocked ranges of one vehicle.

    Each source range is emitted on its own, bookings first and then blocks,
    both in input order. Overlapping ranges are not merged. Iterating twice
    over unchanged input yields the same sequence.
    """

    def __init__(self, bookings: Iterable[Booking], blocks: Iterable[UnavailabilityBlock]):
        self._bookings = tuple(bookings)
        self._blocks = tuple(blocks)

    def __iter__(self) -> Iterator[BlockedRange]:
        for b in self._bookings:
            if b.is_active:
                yield BlockedRange(b.range, BLOCK_ORIGIN_BOOKING)
        for blk in self._blocks:
            yield BlockedRange(blk.range, blk.type or BlockType.MAINTENANCE, blk.reason)

    def to_list(self) -> list[dict]:
        return [br.to_dict() for br in self]


def compute_blocked_ranges(bookings: Iterable[Booking], blocks: Iterable[UnavailabilityBlock]) -> BlockedRanges:
    return BlockedRanges(bookings, blocks)


def can_create_booking(
        candidate: DateRange,
        constraints: Optional[VehicleConstraints],
        existing_bookings: Iterable[Booking],
        unavailability_blocks: Iterable[UnavailabilityBlock],
) -> Optional[str]:
    """
    Admission check for a new booking.

    Returns None when the range may be booked, otherwise a RejectionReason
    code. Passing this check is not a reservation: the store's insert is the
    authoritative guard against a concurrent booking of the same dates.
    """
    if not candidate.is_valid:
        return RejectionReason.INVALID_RANGE

    constraints = constraints or VehicleConstraints()
    if not validate_duration(candidate, constraints.min_days, constraints.max_days):
        return RejectionReason.DURATION_OUT_OF_BOUNDS

    if not is_range_free(candidate, blockers_for(existing_bookings, unavailability_blocks)):
        return RejectionReason.DATE_CONFLICT

    return None


def check_block_creation(candidate: DateRange, bookings: Iterable[Booking]) -> Optional[str]:
    """A block may not be laid over a confirmed booking."""
    if not candidate.is_valid:
        return RejectionReason.INVALID_RANGE
    confirmed = [b.range for b in bookings if b.status == BookingStatus.CONFIRMED]
    if not is_range_free(candidate, confirmed):
        return RejectionReason.DATE_CONFLICT
    return None


# ------------------------- booking lifecycle -------------------------
def can_transition(current: str, target: str) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, frozenset())


def check_transition(current: str, target: str) -> Optional[str]:
    if current in BookingStatus.FINAL:
        return RejectionReason.ALREADY_FINALIZED
    if not can_transition(current, target):
        return RejectionReason.INVALID_TRANSITION
    return None


def check_customer_cancel(status: str, start: date, today: date) -> Optional[str]:
    """
    Customers may cancel a pending or confirmed booking strictly before its
    start date.
    """
    if not can_transition(status, BookingStatus.CANCELLED):
        return RejectionReason.ALREADY_FINALIZED
    if not today < start:
        return RejectionReason.PAST_START
    return None


def check_staff_cancel(status: str, note: Optional[str]) -> Optional[str]:
    """Staff may cancel any non-finalized booking at any time, with a note."""
    if not can_transition(status, BookingStatus.CANCELLED):
        return RejectionReason.ALREADY_FINALIZED
    if not (note or "").strip():
        return RejectionReason.NOTE_REQUIRED
    return None
