"""
Captured-photo analysis for Plant Doctor.

One asyncio task per request runs capture -> preprocess -> infer ->
classify -> enrich to completion under a bounded timeout. All errors
propagate to the caller; re-running the analysis is the retry.
"""

import asyncio
import logging
from typing import Callable, Optional, Union

from plantdoc.core.config import get_settings
from plantdoc.core.errors import AnalysisTimeoutError, NoDeviceError, PlantDocError
from plantdoc.models.diagnosis import DiagnosisResult, SourceMode
from plantdoc.models.frames import RawFrame
from plantdoc.services.enricher import ResultEnricher, get_result_enricher
from plantdoc.services.model_manager import ModelManager, get_model_manager
from plantdoc.services.preprocessor import decode_image
from plantdoc.worker.pipeline import (
    AnalysisPipeline,
    AnalysisRun,
    AnalysisState,
    get_analysis_pipeline,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0  # seconds

# A camera frame, an encoded photo, or None to capture one
AnalysisSource = Union[RawFrame, bytes, None]
CaptureFn = Callable[[], RawFrame]


class CapturedAnalyzer:
    """
    Discrete analysis of a single photo.

    Example:
        >>> analyzer = CapturedAnalyzer(models, pipeline, enricher)
        >>> result = await analyzer.analyze(photo_bytes)
        >>> result.prediction.label
        'Apple Black Rot'
    """

    def __init__(
        self,
        models: ModelManager,
        pipeline: AnalysisPipeline,
        enricher: ResultEnricher,
        capture: Optional[CaptureFn] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._models = models
        self._pipeline = pipeline
        self._enricher = enricher
        self._capture = capture
        self._timeout = timeout

    def set_capture(self, capture: Optional[CaptureFn]) -> None:
        self._capture = capture

    def start(self, source: AnalysisSource = None) -> tuple[AnalysisRun, asyncio.Task]:
        """
        Launch an analysis as a task the caller can cancel.

        Cancelling drops interest in the result; an engine call already
        running is allowed to finish and its result is discarded.
        """
        run = AnalysisRun(mode=SourceMode.CAPTURED)
        task = asyncio.ensure_future(self._run_with_timeout(run, source))
        return run, task

    async def analyze(self, source: AnalysisSource = None) -> DiagnosisResult:
        """
        Analyze a frame, an encoded photo, or a freshly captured frame.

        Returns:
            DiagnosisResult with ``source_mode=captured``

        Raises:
            AnalysisTimeoutError: If the analysis exceeds the timeout
            LoadError: If the model cannot be loaded
            NoDeviceError / CaptureError: If capturing a frame fails
            PreprocessError: If the photo or frame is malformed
            InferenceError: If the engine fails
        """
        run = AnalysisRun(mode=SourceMode.CAPTURED)
        return await self._run_with_timeout(run, source)

    async def _run_with_timeout(self, run: AnalysisRun, source: AnalysisSource) -> DiagnosisResult:
        try:
            return await asyncio.wait_for(self._run(run, source), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            run.fail("timeout")
            logger.error(f"Captured analysis timed out after {self._timeout}s")
            raise AnalysisTimeoutError(
                f"Analysis did not finish within {self._timeout}s"
            ) from e

    async def _run(self, run: AnalysisRun, source: AnalysisSource) -> DiagnosisResult:
        try:
            run.advance(AnalysisState.PREPARING)
            handle = await self._models.load()
            frame = await self._acquire(source)

            run.advance(AnalysisState.ANALYZING)
            output = await asyncio.to_thread(self._pipeline.run, handle, frame)
            result = await self._enricher.enrich(
                output.prediction,
                probabilities=output.probabilities,
                source_mode=SourceMode.CAPTURED,
                inference_time_ms=output.inference_time_ms,
            )
        except asyncio.CancelledError:
            run.fail("cancelled")
            logger.info("Captured analysis cancelled")
            raise
        except PlantDocError as e:
            run.fail(str(e))
            logger.warning(f"Captured analysis failed: {type(e).__name__}: {e}")
            raise
        except Exception as e:
            run.fail(str(e) or type(e).__name__)
            logger.error(f"Unexpected error in captured analysis: {e}", exc_info=True)
            raise

        run.finish(result)
        logger.info(
            f"Captured analysis completed: {result.prediction.label} "
            f"({result.prediction.confidence:.1%})"
        )
        return result

    async def _acquire(self, source: AnalysisSource) -> RawFrame:
        if isinstance(source, RawFrame):
            return source
        if isinstance(source, (bytes, bytearray)):
            return decode_image(bytes(source))
        if self._capture is None:
            raise NoDeviceError("No camera available for capture")
        return await asyncio.to_thread(self._capture)


# Module-level singleton instance
_captured_analyzer: Optional[CapturedAnalyzer] = None


def get_captured_analyzer() -> CapturedAnalyzer:
    """
    Get the singleton CapturedAnalyzer wired to the shared model manager,
    pipeline and enricher.
    """
    global _captured_analyzer
    if _captured_analyzer is None:
        _captured_analyzer = CapturedAnalyzer(
            models=get_model_manager(),
            pipeline=get_analysis_pipeline(),
            enricher=get_result_enricher(),
            timeout=get_settings().analysis_timeout_seconds,
        )
    return _captured_analyzer


def reset_captured_analyzer() -> None:
    global _captured_analyzer
    _captured_analyzer = None
