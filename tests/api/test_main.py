"""
Tests for the application level endpoints.
"""

from fastapi.testclient import TestClient

from plantdoc import __version__
from plantdoc.api.main import app

client = TestClient(app)


def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {
        "message": "Plant Doctor API",
        "version": __version__,
        "status": "operational",
    }


def test_health_reports_model_state():
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["model_state"] == "unloaded"


def test_info():
    response = client.get("/api/v1/info")
    assert response.status_code == 200
    data = response.json()
    assert data["app_name"] == "Plant Doctor"
    assert data["model_path"].endswith(".tflite")
