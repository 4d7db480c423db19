def test_home(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.get_json()["status"] == "ok"
    assert r.get_json()["user"] is None


def test_public_car_catalogue(client, vehicle_id):
    r = client.get("/api/cars")
    assert r.status_code == 200
    assert [c["vehicle_id"] for c in r.get_json()] == [vehicle_id]

    r = client.get(f"/api/cars/{vehicle_id}/availability")
    assert r.status_code == 200
    assert r.get_json()["blockedDates"] == []


def test_unknown_car_is_json_404(client):
    r = client.get("/api/cars/missing")
    assert r.status_code == 404
    assert r.get_json()["reason"] == "vehicle_not_found"
