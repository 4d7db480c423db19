"""
Calendar data and unavailability blocks (maintenance holds, manual blocks).
"""

from datetime import timedelta

import pytest

from carrental.exceptions import (
    DateConflictError,
    InvalidDateRangeError,
    RecordNotFoundError,
    ValidationError,
    VehicleNotFoundError,
)
from carrental.services.availability_service import AvailabilityService
from carrental.services.booking_service import BookingService
from carrental.utils.filters import local_today

from conftest import make_vehicle, put_booking


def day(n):
    return (local_today() + timedelta(days=n)).isoformat()


def test_availability_lists_active_bookings_and_blocks(staff, customer, store):
    vid = make_vehicle(store, min_days=2, max_days=10)
    put_booking(store, vid, customer.user_id, day(1), day(4))
    put_booking(store, vid, customer.user_id, day(20), day(22), status="cancelled")
    AvailabilityService.create_block(staff, vid, day(6), day(8), reason="Tyres", type_="maintenance")

    data = AvailabilityService.availability(vid)
    assert data["carId"] == vid
    assert (data["minDays"], data["maxDays"]) == (2, 10)
    assert data["isAvailable"] is True
    assert data["blockedDates"] == [
        {"from": day(1), "to": day(4), "type": "booking"},
        {"from": day(6), "to": day(8), "type": "maintenance", "reason": "Tyres"},
    ]


def test_availability_defaults_and_status(store):
    vid = make_vehicle(store, status="inactive")
    data = AvailabilityService.availability(vid)
    assert (data["minDays"], data["maxDays"]) == (1, 30)
    assert data["carStatus"] == "inactive"
    assert data["isAvailable"] is False
    assert data["blockedDates"] == []


def test_availability_unknown_vehicle():
    with pytest.raises(VehicleNotFoundError):
        AvailabilityService.availability("missing")


def test_block_prevents_booking(staff, customer, vehicle_id):
    AvailabilityService.create_block(staff, vehicle_id, day(5), day(7), type_="reserved")
    with pytest.raises(DateConflictError):
        BookingService.create_booking(customer, vehicle_id, day(6), day(9))
    # return day of the block is free
    assert BookingService.create_booking(customer, vehicle_id, day(7), day(9))["status"] == "pending"


def test_block_refused_over_confirmed_booking(staff, customer, vehicle_id, store):
    put_booking(store, vehicle_id, customer.user_id, day(3), day(6))
    with pytest.raises(DateConflictError) as ei:
        AvailabilityService.create_block(staff, vehicle_id, day(5), day(8))
    assert "Confirmed booking" in ei.value.message


def test_block_allowed_over_pending_booking(staff, customer, vehicle_id, store):
    put_booking(store, vehicle_id, customer.user_id, day(3), day(6), status="pending")
    blk = AvailabilityService.create_block(staff, vehicle_id, day(5), day(8))
    assert blk["type"] == "other"
    assert blk["created_by"] == staff.user_id


def test_block_validation(staff, vehicle_id):
    with pytest.raises(InvalidDateRangeError):
        AvailabilityService.create_block(staff, vehicle_id, day(5), day(5))
    with pytest.raises(InvalidDateRangeError):
        AvailabilityService.create_block(staff, vehicle_id, None, day(5))
    with pytest.raises(ValidationError):
        AvailabilityService.create_block(staff, vehicle_id, day(5), day(6), type_="holiday")


def test_list_and_delete_blocks(staff, vehicle_id, store):
    b2 = AvailabilityService.create_block(staff, vehicle_id, day(10), day(12))
    b1 = AvailabilityService.create_block(staff, vehicle_id, day(2), day(3))
    assert [b["block_id"] for b in AvailabilityService.list_blocks(vehicle_id)] == [b1["block_id"], b2["block_id"]]

    AvailabilityService.delete_block(vehicle_id, b1["block_id"])
    assert [b["block_id"] for b in AvailabilityService.list_blocks(vehicle_id)] == [b2["block_id"]]


def test_delete_block_errors(staff, vehicle_id, store):
    with pytest.raises(ValidationError):
        AvailabilityService.delete_block(vehicle_id, None)
    with pytest.raises(RecordNotFoundError):
        AvailabilityService.delete_block(vehicle_id, "missing")
    blk = AvailabilityService.create_block(staff, vehicle_id, day(2), day(3))
    other = make_vehicle(store, make="Mazda", model="3")
    # a block can only be removed through its own vehicle
    with pytest.raises(RecordNotFoundError):
        AvailabilityService.delete_block(other, blk["block_id"])
