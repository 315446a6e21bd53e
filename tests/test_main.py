from fastapi.testclient import TestClient
from backend.app.main import app

client = TestClient(app)


def test_read_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"app": "Pocket Coach API", "status": "ok"}


def test_health_check():
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_responses_carry_correlation_id():
    response = client.get("/healthz", headers={"X-Correlation-ID": "abc-123"})
    assert response.headers["X-Correlation-ID"] == "abc-123"
    assert "X-Process-Time" in response.headers


def test_unknown_route_uses_error_envelope():
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND"
