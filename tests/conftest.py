import os
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

# keep the Store from registering its atexit save while tests run
os.environ["APP_ENV"] = "test"

import pytest

from carrental import create_app
from carrental.config import TestConfig
from carrental.models.store import Store
from carrental.services.common import user_from_dict
from carrental.utils.constants import Role, VehicleStatus
from carrental.utils.security import generate_hash


@pytest.fixture(autouse=True)
def store(tmp_path, monkeypatch):
    """
    A fresh pickle-backed Store per test, installed as the singleton so every
    service (and the Flask app) sees the SAME object. Holds only the default
    admin account (admin / Admin123) to begin with.
    """
    st = Store(tmp_path / "data.pkl")
    monkeypatch.setattr(Store, "_inst", st)
    yield st


@pytest.fixture
def app(store):
    return create_app(TestConfig)


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


# ---------------- seed helpers ----------------
def make_user(store, username, role=Role.CUSTOMER, password="Secret123", **profile):
    """Create a user straight in the store and return it as a rich user object."""
    uid = store.create_user(username, generate_hash(password), role, **profile)
    return user_from_dict(store.get_user(uid))


def make_vehicle(store, **fields):
    data = {
        "make": "Toyota",
        "model": "Corolla",
        "year": 2022,
        "price_per_day": 50.0,
        "transmission": "automatic",
        "seats": 5,
        "location": "Auckland",
        "status": VehicleStatus.ACTIVE,
    }
    data.update(fields)
    return store.create_vehicle(data)


def put_booking(store, vehicle_id, user_id, start, end, status="confirmed", **extra):
    """Insert a booking record directly, bypassing the service rules."""
    record = {
        "vehicle_id": vehicle_id,
        "user_id": user_id,
        "start_date": str(start),
        "end_date": str(end),
        "status": status,
        "payment_status": "pending",
        "total_amount": 0.0,
    }
    record.update(extra)
    if status in ("pending", "confirmed"):
        return store.insert_booking(record)
    # finalized bookings skip the overlap guard
    bid = f"b-{len(store.bookings) + 1}"
    store.bookings[bid] = dict(record, booking_id=bid)
    return bid


@pytest.fixture
def admin(store):
    return user_from_dict(store.find_user("admin"))


@pytest.fixture
def staff(store):
    return make_user(store, "staffer", Role.STAFF)


@pytest.fixture
def customer(store):
    return make_user(store, "alice", Role.CUSTOMER, email="alice@example.com", name="Alice")


@pytest.fixture
def vehicle_id(store):
    return make_vehicle(store)


def login(client, username, password):
    return client.post("/auth/login", json={"username": username, "password": password})
