"""
Diagnose API integration tests with edge cases.

Tests cover normal operations, upload validation and error mapping.
"""

import asyncio
from io import BytesIO
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from conftest import BLACK_ROT_RECORD, FakeEngine
from plantdoc.api.main import app
from plantdoc.core import depends_captured_analyzer, depends_history
from plantdoc.core.errors import AnalysisTimeoutError, InferenceError, LoadError, NoDeviceError
from plantdoc.services.enricher import ResultEnricher
from plantdoc.services.history import HistoryStore
from plantdoc.services.inference import InferenceInvoker
from plantdoc.worker.captured import CapturedAnalyzer
from plantdoc.worker.pipeline import AnalysisPipeline

client = TestClient(app)


@pytest.fixture
def history(tmp_path):
    store = HistoryStore(str(tmp_path / "history.json"))
    app.dependency_overrides[depends_history] = lambda: store
    yield store
    app.dependency_overrides.clear()


@pytest.fixture
def analyzer(make_manager, black_rot_store, history):
    captured = CapturedAnalyzer(
        models=make_manager(FakeEngine(output=[0.1, 0.85, 0.03, 0.02])),
        pipeline=AnalysisPipeline(InferenceInvoker()),
        enricher=ResultEnricher(black_rot_store),
    )
    app.dependency_overrides[depends_captured_analyzer] = lambda: captured
    return captured


def _failing_analyzer(error):
    mock_analyzer = Mock()
    mock_analyzer.analyze = AsyncMock(side_effect=error)
    app.dependency_overrides[depends_captured_analyzer] = lambda: mock_analyzer
    return mock_analyzer


def test_diagnose_photo_success(analyzer, history, leaf_png):
    files = {"file": ("leaf.png", BytesIO(leaf_png), "image/png")}

    response = client.post("/api/v1/diagnose", files=files)

    assert response.status_code == 200
    data = response.json()
    assert data["prediction"]["label"] == "Apple Black Rot"
    assert data["prediction"]["class_index"] == 1
    assert data["severity"] == "High"
    assert data["source_mode"] == "captured"
    assert data["health_status"] == "Diseased"
    assert data["disease_record"]["treatment"] == BLACK_ROT_RECORD["treatment"]
    assert len(data["probabilities"]) == 4

    saved = history.entries()
    assert len(saved) == 1
    assert saved[0].prediction.label == "Apple Black Rot"


def test_history_is_written_off_the_event_loop(analyzer, history, leaf_png):
    save_loops = []
    original_save = history.save

    def save(result):
        try:
            save_loops.append(asyncio.get_running_loop())
        except RuntimeError:
            save_loops.append(None)
        return original_save(result)

    history.save = save
    files = {"file": ("leaf.png", BytesIO(leaf_png), "image/png")}

    response = client.post("/api/v1/diagnose", files=files)

    assert response.status_code == 200
    assert save_loops == [None]
    assert len(history.entries()) == 1


def test_unsupported_file_type(analyzer):
    files = {"file": ("leaf.pdf", BytesIO(b"%PDF"), "application/pdf")}

    response = client.post("/api/v1/diagnose", files=files)

    assert response.status_code == 400
    assert "Unsupported file type" in response.json()["detail"]


def test_empty_file(analyzer):
    files = {"file": ("empty.jpg", BytesIO(b""), "image/jpeg")}

    response = client.post("/api/v1/diagnose", files=files)

    assert response.status_code == 400
    assert "Empty file" in response.json()["detail"]


def test_oversized_file(analyzer):
    files = {"file": ("huge.jpg", BytesIO(b"\xff" * (10 * 1024 * 1024 + 1)), "image/jpeg")}

    response = client.post("/api/v1/diagnose", files=files)

    assert response.status_code == 400
    assert "File too large" in response.json()["detail"]


def test_undecodable_photo(analyzer, history):
    files = {"file": ("leaf.jpg", BytesIO(b"not really a jpeg"), "image/jpeg")}

    response = client.post("/api/v1/diagnose", files=files)

    assert response.status_code == 400
    assert "PreprocessError" in response.json()["detail"]
    assert history.entries() == []


@pytest.mark.parametrize(
    "error, status_code",
    [
        (LoadError("Failed to load model"), 503),
        (InferenceError("Engine call failed"), 500),
        (AnalysisTimeoutError("Analysis did not finish within 10.0s"), 504),
    ],
)
def test_analysis_errors_are_mapped(history, leaf_png, error, status_code):
    _failing_analyzer(error)
    files = {"file": ("leaf.png", BytesIO(leaf_png), "image/png")}

    response = client.post("/api/v1/diagnose", files=files)

    assert response.status_code == status_code
    assert str(error) in response.json()["detail"]


def test_capture_without_camera(analyzer):
    response = client.post("/api/v1/diagnose/capture")

    assert response.status_code == 503
    assert "NoDeviceError" in response.json()["detail"]


def test_capture_with_camera(analyzer, history, leaf_frame):
    analyzer.set_capture(Mock(return_value=leaf_frame))

    response = client.post("/api/v1/diagnose/capture")

    assert response.status_code == 200
    assert response.json()["prediction"]["class_identity"] == "Apple___Black_rot"
    assert len(history.entries()) == 1


def test_capture_error_from_mock(history):
    _failing_analyzer(NoDeviceError("Camera is not running"))
    response = client.post("/api/v1/diagnose/capture")
    assert response.status_code == 503
