"""
Shared analysis core for Plant Doctor.

Both analysis modes run the same preprocess -> infer -> classify chain;
they only differ in how it is triggered, how concurrency is limited and
how visible errors are.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from plantdoc.core.config import get_settings
from plantdoc.models.diagnosis import (
    ClassProbability,
    DiagnosisResult,
    Prediction,
    SourceMode,
)
from plantdoc.models.frames import RawFrame
from plantdoc.services.classifier import classify, probability_breakdown
from plantdoc.services.inference import InferenceInvoker
from plantdoc.services.model_manager import ModelHandle
from plantdoc.services.preprocessor import preprocess

logger = logging.getLogger(__name__)


class AnalysisState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    ANALYZING = "analyzing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class AnalysisRun:
    """State of one analysis, Idle -> Preparing -> Analyzing -> Done | Failed."""

    mode: SourceMode
    state: AnalysisState = AnalysisState.IDLE
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    result: Optional[DiagnosisResult] = None
    error: Optional[str] = None

    def advance(self, state: AnalysisState) -> None:
        logger.debug(f"{self.mode.value} analysis: {self.state.value} -> {state.value}")
        self.state = state

    def finish(self, result: DiagnosisResult) -> None:
        self.result = result
        self.advance(AnalysisState.DONE)

    def fail(self, reason: str) -> None:
        self.error = reason
        self.advance(AnalysisState.FAILED)

    @property
    def finished(self) -> bool:
        return self.state in (AnalysisState.DONE, AnalysisState.FAILED)


@dataclass
class PipelineOutput:
    prediction: Prediction
    probabilities: list[ClassProbability]
    inference_time_ms: int


class AnalysisPipeline:
    """
    Synchronous preprocess -> infer -> classify chain.

    Blocking: captured analysis runs it in a worker thread, live analysis
    in its dedicated frame worker.
    """

    def __init__(self, invoker: InferenceInvoker):
        self._invoker = invoker

    def run(self, handle: Optional[ModelHandle], frame: RawFrame) -> PipelineOutput:
        """
        Raises:
            PreprocessError: If the frame is malformed
            InferenceError: If the engine fails or returns a bad vector
        """
        start_time = time.perf_counter()

        tensor = preprocess(frame)
        vector = self._invoker.infer(handle, tensor)
        prediction = classify(vector)

        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        logger.debug(
            f"Prediction {prediction.class_identity} "
            f"(confidence {prediction.confidence:.3f}, {elapsed_ms} ms)"
        )
        return PipelineOutput(
            prediction=prediction,
            probabilities=probability_breakdown(vector),
            inference_time_ms=elapsed_ms,
        )


# Module-level singleton instance
_pipeline: Optional[AnalysisPipeline] = None


def get_analysis_pipeline() -> AnalysisPipeline:
    """Get the shared pipeline used by both analysis modes."""
    global _pipeline
    if _pipeline is None:
        _pipeline = AnalysisPipeline(
            InferenceInvoker(tolerance=get_settings().probability_tolerance)
        )
    return _pipeline


def reset_analysis_pipeline() -> None:
    global _pipeline
    _pipeline = None
