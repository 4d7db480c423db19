"""
Deletion guards for vehicles:
- Cannot delete a vehicle while any pending or confirmed booking references it.
- Deletion is allowed if only finished bookings (cancelled/completed/rejected) exist.
"""

import pytest

from carrental.exceptions import ValidationError, VehicleNotFoundError
from carrental.services.vehicle_service import VehicleService

from conftest import put_booking


@pytest.mark.parametrize("status", ["pending", "confirmed"])
def test_cannot_delete_vehicle_with_active_booking(store, vehicle_id, customer, status):
    put_booking(store, vehicle_id, customer.user_id, "2030-11-01", "2030-11-05", status=status)
    with pytest.raises(ValidationError) as ei:
        VehicleService.delete_vehicle(vehicle_id)
    assert "active bookings" in ei.value.message
    assert vehicle_id in store.vehicles


@pytest.mark.parametrize("status", ["cancelled", "completed", "rejected"])
def test_can_delete_vehicle_with_only_finished_bookings(store, vehicle_id, customer, status):
    put_booking(store, vehicle_id, customer.user_id, "2030-11-01", "2030-11-05", status=status)
    VehicleService.delete_vehicle(vehicle_id)
    assert vehicle_id not in store.vehicles


def test_vehicle_status_does_not_guard_deletion(store, vehicle_id):
    store.update_vehicle(vehicle_id, status="maintenance")
    VehicleService.delete_vehicle(vehicle_id)
    assert vehicle_id not in store.vehicles


def test_delete_unknown_vehicle():
    with pytest.raises(VehicleNotFoundError):
        VehicleService.delete_vehicle("missing")
