"""
Live-preview analysis for Plant Doctor.

The camera thread calls ``LiveAnalyzer.on_frame`` 20-30 times per second.
At most one frame is analyzed at a time: a frame arriving while another
is in flight is dropped, never queued. Completed results overwrite a
single-slot mailbox the display layer polls. Per-frame errors are never
surfaced; the slot simply keeps its previous value.
"""

import asyncio
import itertools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional

from plantdoc.core.config import get_settings
from plantdoc.core.errors import NoDeviceError, PlantDocError
from plantdoc.core.taxonomy import TAXONOMY
from plantdoc.models.diagnosis import DiagnosisResult, SourceMode
from plantdoc.models.frames import RawFrame
from plantdoc.services.camera import (
    DEFAULT_DEVICE_ATTEMPTS,
    DEFAULT_DEVICE_RETRY_DELAY,
    CameraDevice,
    DeviceProvider,
    OpenCVCamera,
    probe_opencv_devices,
    select_device,
)
from plantdoc.services.enricher import ResultEnricher, get_result_enricher
from plantdoc.services.model_manager import ModelHandle, ModelManager, get_model_manager
from plantdoc.worker.pipeline import AnalysisPipeline, AnalysisState, get_analysis_pipeline

logger = logging.getLogger(__name__)


class LatestResultSlot:
    """
    Single-slot mailbox holding the newest live result.

    One writer replaces the whole (version, result) tuple with a single
    reference assignment; readers never see a partial update or a queue.
    """

    def __init__(self):
        self._versions = itertools.count(1)
        self._entry: tuple[int, Optional[DiagnosisResult]] = (0, None)

    def publish(self, result: DiagnosisResult) -> int:
        version = next(self._versions)
        self._entry = (version, result)
        return version

    def read(self) -> Optional[DiagnosisResult]:
        return self._entry[1]

    def clear(self) -> None:
        self._entry = (0, None)


@dataclass(frozen=True)
class LiveStats:
    received: int
    processed: int
    dropped_busy: int
    dropped_not_ready: int
    failed: int


class LiveAnalyzer:
    """
    Drop-on-busy frame analysis feeding a LatestResultSlot.

    ``on_frame`` never blocks: it either hands the frame to the single
    frame worker or drops it.

    Args:
        models: Shared model manager; frames are dropped until it is Ready
        pipeline: Shared analysis core
        enricher: Attaches cached disease records
        loop: Event loop used to prefetch missing records (optional)
    """

    def __init__(
        self,
        models: ModelManager,
        pipeline: AnalysisPipeline,
        enricher: ResultEnricher,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._models = models
        self._pipeline = pipeline
        self._enricher = enricher
        self._loop = loop
        self.latest = LatestResultSlot()

        self._busy = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="live-frame")
        self._stats_lock = threading.Lock()
        self._received = 0
        self._processed = 0
        self._dropped_busy = 0
        self._dropped_not_ready = 0
        self._failed = 0
        self.state = AnalysisState.IDLE

    def bind_loop(self, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        self._loop = loop

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def stats(self) -> LiveStats:
        with self._stats_lock:
            return LiveStats(
                received=self._received,
                processed=self._processed,
                dropped_busy=self._dropped_busy,
                dropped_not_ready=self._dropped_not_ready,
                failed=self._failed,
            )

    def _count(self, name: str) -> None:
        with self._stats_lock:
            setattr(self, name, getattr(self, name) + 1)

    def on_frame(self, frame: RawFrame) -> bool:
        """
        Offer one frame for analysis.

        Returns:
            True if the frame was accepted, False if it was dropped
        """
        self._count("_received")

        handle = self._models.handle
        if handle is None:
            self._count("_dropped_not_ready")
            return False

        if not self._busy.acquire(blocking=False):
            self._count("_dropped_busy")
            return False

        try:
            self._executor.submit(self._process, handle, frame)
        except RuntimeError:
            # executor shut down
            self._busy.release()
            self._count("_dropped_not_ready")
            return False
        return True

    def _process(self, handle: ModelHandle, frame: RawFrame) -> None:
        try:
            self.state = AnalysisState.ANALYZING
            output = self._pipeline.run(handle, frame)
            result = self._enricher.enrich_cached(
                output.prediction,
                probabilities=output.probabilities,
                source_mode=SourceMode.LIVE,
                inference_time_ms=output.inference_time_ms,
            )
            self.latest.publish(result)
            self._count("_processed")
            self.state = AnalysisState.DONE
            self._schedule_prefetch(result)
        except PlantDocError as e:
            self._count("_failed")
            self.state = AnalysisState.FAILED
            logger.debug(f"Live frame skipped: {type(e).__name__}: {e}")
        except Exception as e:
            self._count("_failed")
            self.state = AnalysisState.FAILED
            logger.error(f"Unexpected error in live frame analysis: {e}", exc_info=True)
        finally:
            self._busy.release()

    def _schedule_prefetch(self, result: DiagnosisResult) -> None:
        identity = result.prediction.class_identity
        if (
            self._loop is None
            or self._loop.is_closed()
            or result.disease_record is not None
            or TAXONOMY[result.prediction.class_index].is_healthy
        ):
            return
        asyncio.run_coroutine_threadsafe(self._enricher.prefetch(identity), self._loop)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


CameraFactory = Callable[[CameraDevice], OpenCVCamera]


class LiveSession:
    """
    Binds a camera stream to a LiveAnalyzer.

    ``start()`` runs device selection (bounded retries) and begins
    streaming frames into ``analyzer.on_frame``. Live analysis ends when
    the camera stops delivering frames.
    """

    def __init__(
        self,
        analyzer: LiveAnalyzer,
        device_provider: DeviceProvider,
        camera_factory: CameraFactory,
        attempts: int = DEFAULT_DEVICE_ATTEMPTS,
        delay: float = DEFAULT_DEVICE_RETRY_DELAY,
    ):
        self.analyzer = analyzer
        self._device_provider = device_provider
        self._camera_factory = camera_factory
        self._attempts = attempts
        self._delay = delay
        self.camera: Optional[OpenCVCamera] = None
        self._starting: Optional[asyncio.Future] = None

    @property
    def running(self) -> bool:
        return self.camera is not None and self.camera.streaming

    async def start(self) -> CameraDevice:
        """
        Open a camera unless one is already open. Concurrent callers share
        one device selection and one camera.

        Raises:
            NoDeviceError: If no camera is found after all attempts
        """
        if self.camera is not None:
            return self.camera.device

        if self._starting is None:
            self._starting = asyncio.ensure_future(self._open())
        return await asyncio.shield(self._starting)

    async def _open(self) -> CameraDevice:
        try:
            device = await select_device(self._device_provider, self._attempts, self._delay)
            camera = await asyncio.to_thread(self._camera_factory, device)
            self.analyzer.bind_loop(asyncio.get_running_loop())
            camera.start(self.analyzer.on_frame)
            self.camera = camera
            return device
        finally:
            self._starting = None

    def capture(self) -> RawFrame:
        """One-shot capture from the running camera."""
        if self.camera is None:
            raise NoDeviceError("Camera is not running")
        return self.camera.capture()

    def stop(self) -> None:
        if self.camera is not None:
            self.camera.release()
            self.camera = None
        self.analyzer.bind_loop(None)
        # Drop the result of the stopped stream
        self.analyzer.latest.clear()


# Module-level singleton instances
_live_analyzer: Optional[LiveAnalyzer] = None
_live_session: Optional[LiveSession] = None


def get_live_analyzer() -> LiveAnalyzer:
    """Get the singleton LiveAnalyzer sharing the model manager and pipeline."""
    global _live_analyzer
    if _live_analyzer is None:
        _live_analyzer = LiveAnalyzer(
            models=get_model_manager(),
            pipeline=get_analysis_pipeline(),
            enricher=get_result_enricher(),
        )
    return _live_analyzer


def _open_camera(device: CameraDevice) -> OpenCVCamera:
    settings = get_settings()
    return OpenCVCamera(
        device,
        width=settings.camera_width,
        height=settings.camera_height,
        fps=settings.camera_fps,
    )


def get_live_session() -> LiveSession:
    """Get the singleton LiveSession driving the LiveAnalyzer from OpenCV."""
    global _live_session
    if _live_session is None:
        settings = get_settings()
        _live_session = LiveSession(
            analyzer=get_live_analyzer(),
            device_provider=probe_opencv_devices,
            camera_factory=_open_camera,
            attempts=settings.camera_device_attempts,
            delay=settings.camera_device_retry_delay,
        )
    return _live_session


def reset_live() -> None:
    """Stop the live session, shut the frame worker down and drop both singletons."""
    global _live_analyzer, _live_session
    if _live_session is not None:
        _live_session.stop()
    if _live_analyzer is not None:
        _live_analyzer.shutdown(wait=False)
    _live_analyzer = None
    _live_session = None
