"""
Shared fixtures for Plant Doctor tests.

Every test starts from fresh singletons; fakes stand in for the TFLite
engine and the remote knowledge store.
"""

import asyncio
import threading
import time

import cv2
import numpy as np
import pytest

import plantdoc.services.taxonomy_service as taxonomy_service_module
from plantdoc.core.config import reset_settings
from plantdoc.models.diagnosis import DiseaseRecord
from plantdoc.models.frames import RawFrame
from plantdoc.services.enricher import reset_result_enricher
from plantdoc.services.history import reset_history_store
from plantdoc.services.knowledge_store import reset_knowledge_store
from plantdoc.services.model_manager import ModelManager, reset_model_manager
from plantdoc.services.taxonomy_service import TaxonomyService
from plantdoc.worker.captured import reset_captured_analyzer
from plantdoc.worker.live import reset_live
from plantdoc.worker.pipeline import reset_analysis_pipeline

BLACK_ROT_OUTPUT = [0.1, 0.85, 0.03, 0.02]

BLACK_ROT_RECORD = {
    "description": "Fungal disease caused by Botryosphaeria obtusa.",
    "treatment": ["Prune out dead wood and cankers", "Apply captan during bloom"],
    "symptoms": ["Frog-eye leaf spots", "Rotting fruit"],
}


class FakeEngine:
    """InferenceEngine returning a fixed vector, recording concurrency."""

    def __init__(self, output=BLACK_ROT_OUTPUT, delay: float = 0.0, error: Exception = None):
        self.output = list(output)
        self.delay = delay
        self.error = error
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.shapes = []
        self._lock = threading.Lock()

    def classify(self, tensor):
        with self._lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.shapes.append(tuple(tensor.shape))
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return list(self.output)
        finally:
            with self._lock:
                self.active -= 1


class FakeStore:
    """KnowledgeStore serving records from a dict."""

    def __init__(self, records=None, error: Exception = None, delay: float = 0.0):
        self.records = records or {}
        self.error = error
        self.delay = delay
        self.calls = []

    async def lookup(self, class_identity):
        self.calls.append(class_identity)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        data = self.records.get(class_identity)
        return DiseaseRecord.model_validate(data) if data is not None else None


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset all module-level singletons before and after each test."""

    def _reset():
        reset_live()
        reset_captured_analyzer()
        reset_analysis_pipeline()
        reset_result_enricher()
        reset_knowledge_store()
        reset_model_manager()
        reset_history_store()
        reset_settings()
        TaxonomyService._instance = None
        taxonomy_service_module._taxonomy_service = None

    _reset()
    yield
    _reset()


@pytest.fixture
def black_rot_store():
    return FakeStore(records={"Apple___Black_rot": BLACK_ROT_RECORD})


@pytest.fixture
def make_manager():
    """Build a ModelManager around an engine, already loaded unless ready=False."""

    def _make(engine=None, ready: bool = True) -> ModelManager:
        engine = engine if engine is not None else FakeEngine()
        manager = ModelManager("models/test.tflite", loader=lambda path: engine)
        if ready:
            asyncio.run(manager.load())
        return manager

    return _make


@pytest.fixture
def leaf_frame() -> RawFrame:
    """A 64x48 BGR frame as delivered by OpenCV."""
    image = np.zeros((48, 64, 3), dtype=np.uint8)
    image[:, :, 1] = 140
    return RawFrame.from_array(image, pixel_format="bgr")


@pytest.fixture
def leaf_png() -> bytes:
    image = np.zeros((40, 40, 3), dtype=np.uint8)
    image[10:30, 10:30] = (30, 160, 40)
    ok, encoded = cv2.imencode(".png", image)
    assert ok
    return encoded.tobytes()
