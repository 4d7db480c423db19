"""
Auth flow over HTTP: register -> login -> access control -> logout.
"""

from conftest import login, make_user


def _get_session_user_id(client):
    with client.session_transaction() as sess:
        return sess.get("uid")


def _register(client, username, password, **extra):
    return client.post("/auth/register", json=dict(extra, username=username, password=password))


def _logout(client):
    return client.post("/auth/logout")


def test_register_and_login_then_block_staff_access(client):
    r = _register(client, "alice", "Secret123", email="alice@example.com")
    assert r.status_code == 201
    assert r.get_json()["role"] == "customer"

    r = login(client, "alice", "Secret123")
    assert r.status_code == 200
    assert _get_session_user_id(client), "Expected session to contain user id after login"

    r = client.get("/staff/users")
    assert r.status_code == 403
    assert r.get_json()["reason"] == "forbidden"


def test_register_ignores_requested_role(client, store):
    r = _register(client, "sneaky", "Secret123", role="admin")
    assert r.status_code == 201
    assert store.find_user("sneaky")["role"] == "customer"


def test_register_duplicate_username_fails(client):
    _register(client, "bob", "Secret123")
    r = _register(client, "bob", "Secret456")
    assert r.status_code == 400
    assert "already exists" in r.get_json()["error"].lower()


def test_login_wrong_password(client):
    _register(client, "carl", "Secret123")
    r = login(client, "carl", "wrongpw")
    assert r.status_code == 401
    assert not _get_session_user_id(client)
    assert "invalid" in r.get_json()["error"].lower()


def test_form_encoded_login_is_accepted(client):
    _register(client, "dora", "Secret123")
    r = client.post("/auth/login", data={"username": "dora", "password": "Secret123"})
    assert r.status_code == 200


def test_staff_login_can_access_staff_pages(client, store):
    make_user(store, "staffer", "staff", password="Staff123")
    r = login(client, "staffer", "Staff123")
    assert r.get_json()["role"] == "staff"
    assert client.get("/staff/users").status_code == 200


def test_logout_revokes_access(client, store):
    make_user(store, "staffer", "staff", password="Staff123")
    login(client, "staffer", "Staff123")
    assert _get_session_user_id(client)

    assert _logout(client).status_code == 200
    assert not _get_session_user_id(client)
    assert client.get("/staff/users").status_code == 401


def test_role_change_applies_without_relogin(client, store):
    """The session only carries the user id; the role is re-read per request."""
    user = make_user(store, "staffer", "staff", password="Staff123")
    login(client, "staffer", "Staff123")
    assert client.get("/staff/analytics").status_code == 200

    store.update_user(user.user_id, role="customer")
    assert client.get("/staff/analytics").status_code == 403


def test_deleted_account_session_is_anonymous(client, store):
    user = make_user(store, "ghost", password="Secret123")
    login(client, "ghost", "Secret123")
    store.delete_user(user.user_id)
    assert client.get("/api/users/me").status_code == 401
