"""
Route protection: anonymous callers get 401, customers get 403 on back-office
routes, and only admins may change roles.
"""

import pytest

from conftest import login, make_user


@pytest.mark.parametrize("method,path", [
    ("get", "/staff/users"),
    ("get", "/staff/analytics"),
    ("get", "/staff/maintenance"),
    ("get", "/api/bookings"),
    ("get", "/api/bookings/my-bookings"),
    ("post", "/api/bookings"),
    ("post", "/api/cars"),
    ("get", "/api/users/me"),
    ("get", "/api/notifications"),
])
def test_anonymous_is_unauthorized(client, method, path):
    r = getattr(client, method)(path)
    assert r.status_code == 401
    assert r.get_json()["reason"] == "unauthorized"


@pytest.mark.parametrize("method,path", [
    ("get", "/staff/users"),
    ("get", "/api/bookings"),
    ("post", "/api/cars"),
    ("post", "/api/bookings/manual"),
    ("patch", "/api/bookings/x/status"),
    ("patch", "/api/bookings/x/admin-cancel"),
])
def test_customer_is_forbidden_on_back_office_routes(client, store, method, path):
    make_user(store, "alice", password="Secret123")
    login(client, "alice", "Secret123")
    assert getattr(client, method)(path, json={}).status_code == 403


def test_only_admin_changes_roles(client, store):
    make_user(store, "staffer", "staff", password="Staff123")
    target = make_user(store, "bob")

    login(client, "staffer", "Staff123")
    assert client.patch(f"/staff/users/{target.user_id}/role", json={"role": "staff"}).status_code == 403

    login(client, "admin", "Admin123")
    r = client.patch(f"/staff/users/{target.user_id}/role", json={"role": "staff"})
    assert r.status_code == 200
    assert store.get_user(target.user_id)["role"] == "staff"
