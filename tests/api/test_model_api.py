"""
Integration tests for model status endpoints.
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from conftest import FakeEngine
from plantdoc.api.main import app
from plantdoc.core import depends_model_manager
from plantdoc.services.model_manager import ModelManager

client = TestClient(app)


@pytest.fixture
def use_manager():
    def _use(manager):
        app.dependency_overrides[depends_model_manager] = lambda: manager
        return manager

    yield _use
    app.dependency_overrides.clear()


def test_model_info_before_load(use_manager):
    use_manager(ModelManager("models/test.tflite", loader=Mock()))

    response = client.get("/api/v1/model")

    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "unloaded"
    assert data["input_size"] == 128
    assert data["supported_classes"][3] == "Apple___healthy"


def test_explicit_load(use_manager):
    manager = use_manager(ModelManager("models/test.tflite", loader=lambda path: FakeEngine()))

    response = client.post("/api/v1/model/load")

    assert response.status_code == 200
    assert response.json()["state"] == "ready"
    assert manager.handle is not None


def test_failed_load_reports_reason(use_manager):
    loader = Mock(side_effect=FileNotFoundError("models/test.tflite"))
    use_manager(ModelManager("models/test.tflite", loader=loader))

    response = client.post("/api/v1/model/load")
    assert response.status_code == 503
    assert "LoadError" in response.json()["detail"]

    info = client.get("/api/v1/model").json()
    assert info["state"] == "failed"
    assert "models/test.tflite" in info["failure_reason"]
    assert loader.call_count == 1


def test_reset(use_manager, make_manager):
    manager = use_manager(make_manager())

    response = client.post("/api/v1/model/reset")

    assert response.status_code == 200
    assert response.json()["state"] == "unloaded"
    assert manager.handle is None
