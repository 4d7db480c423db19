"""
Payment lifecycle, reviews and malformed request bodies through the HTTP
routes. Bad input always comes back as a 400 JSON error, never a 500.
"""

from datetime import timedelta

import pytest

from carrental.utils.filters import local_today

from conftest import login, make_user, put_booking


def day(n):
    return (local_today() + timedelta(days=n)).isoformat()


def _book(client, vid, a, b, **extra):
    return client.post("/api/bookings", json=dict(extra, vehicle_id=vid, start_date=day(a), end_date=day(b)))


# ---------------- malformed bodies ----------------
@pytest.mark.parametrize("addons", [{"extra_km_qty": "ten"}, {"child_seat_qty": [2]}, ["gps"], "gps"])
def test_malformed_addons_are_400(client, store, vehicle_id, addons):
    make_user(store, "alice", password="Secret123")
    login(client, "alice", "Secret123")
    r = _book(client, vehicle_id, 2, 4, addons=addons)
    assert r.status_code == 400
    assert r.get_json()["reason"] == "invalid_addons"
    assert store.bookings == {}


def test_non_string_status_and_block_type_are_400(client, store, vehicle_id):
    alice = make_user(store, "alice")
    bid = put_booking(store, vehicle_id, alice.user_id, day(2), day(4), status="pending")
    login(client, "admin", "Admin123")

    r = client.patch(f"/api/bookings/{bid}/status", json={"status": 1})
    assert (r.status_code, r.get_json()["reason"]) == (400, "validation_error")
    assert store.bookings[bid]["status"] == "pending"

    r = client.post(f"/api/cars/{vehicle_id}/unavailable",
                    json={"start_date": day(10), "end_date": day(12), "type": 5})
    assert (r.status_code, r.get_json()["reason"]) == (400, "validation_error")

    r = client.post(f"/api/cars/{vehicle_id}/unavailable",
                    json={"start_date": day(10), "end_date": day(12), "reason": 42})
    assert r.status_code == 201
    assert r.get_json()["reason"] == "42"

    r = client.post("/api/cars", json={"make": ["Kia"], "model": 7, "price_per_day": 70, "status": 3})
    assert r.status_code == 400


def test_non_string_credentials_are_handled(client):
    r = client.post("/auth/login", json={"username": 123, "password": 456})
    assert r.status_code == 401


def test_block_over_confirmed_booking_is_409(client, store, vehicle_id):
    alice = make_user(store, "alice")
    put_booking(store, vehicle_id, alice.user_id, day(5), day(9))
    login(client, "admin", "Admin123")
    r = client.post(f"/api/cars/{vehicle_id}/unavailable",
                    json={"start_date": day(8), "end_date": day(10), "type": "maintenance"})
    assert (r.status_code, r.get_json()["reason"]) == (409, "date_conflict")


# ---------------- payments ----------------
def test_online_booking_paid_completed_counts_as_revenue(client, store, vehicle_id):
    make_user(store, "alice", password="Secret123")
    make_user(store, "staffer", "staff", password="Staff123")

    login(client, "alice", "Secret123")
    booking = _book(client, vehicle_id, 1, 3).get_json()
    bid = booking["booking_id"]
    r = client.get(f"/api/bookings/{bid}/invoice")
    assert (r.status_code, r.get_json()["reason"]) == (400, "not_paid")
    # customers cannot mark their own booking paid
    assert client.patch(f"/api/bookings/{bid}/payment", json={"payment_status": "paid"}).status_code == 403

    login(client, "staffer", "Staff123")
    r = client.patch(f"/api/bookings/{bid}/payment", json={"payment_status": "refunded"})
    assert (r.status_code, r.get_json()["reason"]) == (400, "validation_error")
    r = client.patch(f"/api/bookings/{bid}/payment", data={"payment_status": "paid", "payment_method": "card"})
    assert r.status_code == 200
    assert r.get_json()["payment_status"] == "paid"
    assert client.patch(f"/api/bookings/{bid}/status", json={"status": "confirmed"}).status_code == 200
    assert client.patch(f"/api/bookings/{bid}/status", json={"status": "completed"}).status_code == 200
    assert client.get("/staff/analytics").get_json()["totalRevenue"] == 100.0

    login(client, "alice", "Secret123")
    inv = client.get(f"/api/bookings/{bid}/invoice").get_json()
    assert inv["payment_status"] == "paid"
    assert inv["total_amount"] == 100.0
    feed = client.get("/api/notifications?q=payment").get_json()
    assert feed["meta"]["total"] == 1


# ---------------- reviews ----------------
def test_review_routes(client, store, vehicle_id):
    alice = make_user(store, "alice", password="Secret123", name="Alice")
    done = put_booking(store, vehicle_id, alice.user_id, day(-6), day(-3), status="completed")
    upcoming = put_booking(store, vehicle_id, alice.user_id, day(3), day(5))

    payload = {"vehicle_id": vehicle_id, "booking_id": done, "rating": 5, "comment": "Great"}
    assert client.post("/api/reviews", json=payload).status_code == 401

    login(client, "alice", "Secret123")
    r = client.post("/api/reviews", json=dict(payload, booking_id=upcoming))
    assert (r.status_code, r.get_json()["reason"]) == (403, "review_not_eligible")
    r = client.post("/api/reviews", json=dict(payload, rating=9))
    assert r.status_code == 400
    r = client.post("/api/reviews", json=payload)
    assert r.status_code == 201
    r = client.post("/api/reviews", json=payload)
    assert (r.status_code, r.get_json()["reason"]) == (409, "duplicate_review")

    client.post("/auth/logout")
    listing = client.get(f"/api/cars/{vehicle_id}/reviews").get_json()
    assert listing["stats"]["count"] == 1
    assert listing["stats"]["averageRating"] == 5.0
    assert listing["reviews"][0]["reviewer"] == "Alice"
    assert client.get("/api/cars/nope/reviews").status_code == 404


# ---------------- notifications ----------------
def test_notification_read_flag_parses_text(client, store, vehicle_id):
    make_user(store, "alice", password="Secret123")
    login(client, "alice", "Secret123")
    _book(client, vehicle_id, 1, 2)
    nid = client.get("/api/notifications").get_json()["items"][0]["notification_id"]

    assert client.patch(f"/api/notifications/{nid}", json={"read": "true"}).get_json()["read"] is True
    assert client.patch(f"/api/notifications/{nid}", json={"read": "false"}).get_json()["read"] is False
    assert client.patch(f"/api/notifications/{nid}", data={"read": "1"}).get_json()["read"] is True
    assert client.patch(f"/api/notifications/{nid}", data={"read": "0"}).get_json()["read"] is False
    assert client.patch(f"/api/notifications/{nid}", json={}).get_json()["read"] is True
    assert client.get("/api/notifications?unread=true").get_json()["meta"]["total"] == 0
