import pytest

from locator.receiver import create_app


@pytest.fixture
def client():
    app = create_app("testing")
    return app.test_client()


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_accepts_report(client):
    body = {"location": {"lat": 1.0, "lon": 2.0, "accuracy": 3}, "timestamp": 1700000000000}
    resp = client.post("/reports", json=body)
    assert resp.status_code == 201
    assert resp.get_json() == {"received": body}


def test_accepts_long_coordinate_names(client):
    body = {"location": {"latitude": 1, "longitude": 2}, "timestamp": 5}
    assert client.post("/reports", json=body).status_code == 201


@pytest.mark.parametrize("body", [
    [],
    {"timestamp": 1},
    {"location": {"lat": 1.0}, "timestamp": 1},
    {"location": {"lat": True, "lon": 2.0}, "timestamp": 1},
    {"location": {"lat": 1.0, "lon": 2.0}, "timestamp": "now"},
    {"location": {"lat": 1.0, "lon": 2.0}, "timestamp": 1.5},
])
def test_rejects_invalid_reports(client, body):
    resp = client.post("/reports", json=body)
    assert resp.status_code == 400
    assert "error" in resp.get_json()


def test_unknown_route_is_json(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Not Found", "status": 404}


def test_wrong_method(client):
    assert client.get("/reports").status_code == 405
