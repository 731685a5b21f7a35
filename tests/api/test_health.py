"""
Smoke tests for the application endpoints.
"""

from fastapi.testclient import TestClient

from app.api.main import app

client = TestClient(app)


def test_root():
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "operational"


def test_health():
    assert client.get("/api/v1/health").json() == {
        "status": "healthy",
        "service": "plant-caretaker-web",
    }


def test_info_reports_configuration():
    data = client.get("/api/v1/info").json()

    assert data["app_name"] == "Plant Caretaker"
    assert data["plant_id_configured"] is False
