"""
Double-booking protection at the storage layer. The admission check alone is
not a reservation: two requests can both pass it, and the Store's insert must
then let exactly one of them through.
"""

import sys
import threading
from datetime import timedelta

import pytest

from carrental.exceptions import DateConflictError, RentalError, StorageConflictError
from carrental.services.booking_service import BookingService
from carrental.services.common import vehicle_calendar, vehicle_from_dict
from carrental.utils.filters import local_today

from conftest import make_user


def _dates(a, b):
    today = local_today()
    return (today + timedelta(days=a)).isoformat(), (today + timedelta(days=b)).isoformat()


def test_store_rejects_overlapping_insert(store, vehicle_id, customer):
    start, end = _dates(10, 15)
    store.insert_booking({"vehicle_id": vehicle_id, "user_id": customer.user_id,
                          "start_date": start, "end_date": end, "status": "confirmed"})
    s2, e2 = _dates(12, 20)
    with pytest.raises(StorageConflictError) as ei:
        store.insert_booking({"vehicle_id": vehicle_id, "user_id": customer.user_id,
                              "start_date": s2, "end_date": e2, "status": "pending"})
    assert ei.value.reason == "storage_conflict"
    assert ei.value.status_code == 409


def test_both_pass_admission_only_one_is_stored(store, vehicle_id, customer):
    """Both requests are admitted against the same snapshot; the second insert loses."""
    from carrental.models.availability import can_create_booking
    from carrental.services.common import parse_range

    rng = parse_range(*_dates(3, 6))
    veh = vehicle_from_dict(store.get_vehicle(vehicle_id))
    bookings, blocks = vehicle_calendar(store, vehicle_id)
    assert can_create_booking(rng, veh.constraints(), bookings, blocks) is None
    assert can_create_booking(rng, veh.constraints(), bookings, blocks) is None

    record = {"vehicle_id": vehicle_id, "user_id": customer.user_id,
              "start_date": rng.start.isoformat(), "end_date": rng.end.isoformat(), "status": "pending"}
    store.insert_booking(dict(record))
    with pytest.raises(StorageConflictError):
        store.insert_booking(dict(record))
    assert len(store.bookings) == 1


def test_concurrent_bookings_exactly_one_wins(store, vehicle_id, customer):
    other = make_user(store, "bob")
    start, end = _dates(5, 8)
    barrier = threading.Barrier(2)
    results, errors = [], []

    def attempt(user):
        barrier.wait()
        try:
            results.append(BookingService.create_booking(user, vehicle_id, start, end))
        except RentalError as e:
            errors.append(e)

    threads = [threading.Thread(target=attempt, args=(u,)) for u in (customer, other)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 1
    assert len(errors) == 1
    # the loser fails either at admission or at the storage insert
    assert errors[0].reason in ("date_conflict", "storage_conflict")
    assert errors[0].status_code == 409
    active = [b for b in store.bookings.values() if b["vehicle_id"] == vehicle_id]
    assert len(active) == 1


def test_cancelled_booking_does_not_trip_storage_guard(store, vehicle_id, customer):
    start, end = _dates(10, 15)
    bid = store.insert_booking({"vehicle_id": vehicle_id, "user_id": customer.user_id,
                                "start_date": start, "end_date": end, "status": "confirmed"})
    store.update_booking(bid, {"status": "cancelled"})
    store.insert_booking({"vehicle_id": vehicle_id, "user_id": customer.user_id,
                          "start_date": start, "end_date": end, "status": "pending"})
    assert len(store.bookings) == 2


def test_store_refuses_block_over_confirmed_booking(store, vehicle_id, customer):
    start, end = _dates(5, 9)
    store.insert_booking({"vehicle_id": vehicle_id, "user_id": customer.user_id,
                          "start_date": start, "end_date": end, "status": "confirmed"})
    s2, e2 = _dates(8, 12)
    with pytest.raises(DateConflictError):
        store.create_block({"vehicle_id": vehicle_id, "start_date": s2, "end_date": e2, "type": "other"})
    assert store.blocks == {}

    # a pending booking does not stop a block; the block stops its confirmation instead
    s3, e3 = _dates(20, 23)
    pending = store.insert_booking({"vehicle_id": vehicle_id, "user_id": customer.user_id,
                                    "start_date": s3, "end_date": e3, "status": "pending"})
    s4, e4 = _dates(21, 22)
    store.create_block({"vehicle_id": vehicle_id, "start_date": s4, "end_date": e4, "type": "maintenance"})
    with pytest.raises(DateConflictError):
        store.confirm_booking(pending)
    assert store.bookings[pending]["status"] == "pending"


def test_store_confirm_booking(store, vehicle_id, customer):
    start, end = _dates(5, 9)
    bid = store.insert_booking({"vehicle_id": vehicle_id, "user_id": customer.user_id,
                                "start_date": start, "end_date": end, "status": "pending"})
    # a block on another car or on adjacent days does not interfere
    store.create_block({"vehicle_id": "elsewhere", "start_date": start, "end_date": end, "type": "other"})
    s2, e2 = _dates(9, 11)
    store.create_block({"vehicle_id": vehicle_id, "start_date": s2, "end_date": e2, "type": "other"})
    assert store.confirm_booking(bid) is True
    assert store.bookings[bid]["status"] == "confirmed"
    assert store.confirm_booking("missing") is False


def test_reads_while_writer_inserts(store, vehicle_id, customer):
    """Readers work on snapshots, so a concurrent insert never breaks their iteration."""
    old = sys.getswitchinterval()
    sys.setswitchinterval(1e-6)
    done = threading.Event()
    failures = []

    def writer():
        try:
            for i in range(150):
                start, end = _dates(2 * i, 2 * i + 1)
                store.insert_booking({"vehicle_id": vehicle_id, "user_id": customer.user_id,
                                      "start_date": start, "end_date": end, "status": "pending"})
                store.create_block({"vehicle_id": "spare", "start_date": start, "end_date": end, "type": "other"})
        finally:
            done.set()

    def reader():
        try:
            while not done.is_set():
                vehicle_calendar(store, vehicle_id)
                store.values("bookings")
                store.users_with_roles({"admin"})
        except RuntimeError as e:
            failures.append(e)

    try:
        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
    finally:
        sys.setswitchinterval(old)

    assert failures == []
    assert len(store.bookings) == 150
