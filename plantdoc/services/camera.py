"""
Camera collaborator for Plant Doctor.

Device selection is an explicit, cancellable retry task: up to
``attempts`` tries with a fixed ``delay`` between them, preferring a
rear-facing device and falling back to any device. Once a device is
open, the camera delivers RawFrames to a callback from a background
thread and serves one-shot ``capture()`` calls.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

import cv2

from plantdoc.core.errors import CaptureError, NoDeviceError
from plantdoc.models.frames import PixelFormat, RawFrame

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_ATTEMPTS = 10
DEFAULT_DEVICE_RETRY_DELAY = 0.5  # seconds


class CameraFacing(str, Enum):
    BACK = "back"
    FRONT = "front"
    EXTERNAL = "external"


@dataclass(frozen=True)
class CameraDevice:
    id: str
    facing: CameraFacing = CameraFacing.EXTERNAL


DeviceProvider = Callable[[], Sequence[CameraDevice]]
FrameCallback = Callable[[RawFrame], object]


def pick_device(devices: Sequence[CameraDevice]) -> Optional[CameraDevice]:
    """Rear-facing device first, otherwise the first available one."""
    for device in devices:
        if device is not None and device.facing is CameraFacing.BACK:
            return device
    return next((d for d in devices if d is not None), None)


async def select_device(
    provider: DeviceProvider,
    attempts: int = DEFAULT_DEVICE_ATTEMPTS,
    delay: float = DEFAULT_DEVICE_RETRY_DELAY,
) -> CameraDevice:
    """
    Find a usable camera device, retrying while none is available.

    Cancelling the awaiting task stops the retries.

    Args:
        provider: Lists currently available devices (may block)
        attempts: Maximum number of lookups
        delay: Seconds to wait between lookups

    Returns:
        The selected CameraDevice

    Raises:
        NoDeviceError: If no device was found after all attempts
    """
    for attempt in range(1, attempts + 1):
        devices = await asyncio.to_thread(provider)
        device = pick_device(devices or [])
        if device is not None:
            if device.facing is CameraFacing.BACK:
                logger.info(f"Back camera device found: {device.id}")
            else:
                logger.warning(f"Using available camera (not back): {device.id}")
            return device

        if attempt < attempts:
            logger.info(f"Retrying camera initialization ({attempt}/{attempts})...")
            await asyncio.sleep(delay)

    logger.error("No camera device found after retries")
    raise NoDeviceError(
        "No camera device found. Please ensure camera permissions are granted."
    )


def probe_opencv_devices(max_index: int = 4) -> list[CameraDevice]:
    """List OpenCV device indices that can be opened."""
    devices = []
    for index in range(max_index):
        cap = cv2.VideoCapture(index)
        try:
            if cap.isOpened():
                devices.append(CameraDevice(id=str(index)))
        finally:
            cap.release()
    return devices


class OpenCVCamera:
    """
    OpenCV VideoCapture exposed as a frame stream plus one-shot capture.

    ``start()`` runs a background thread that reads frames at ``fps`` and
    hands each one to the callback; the callback is expected not to block.
    """

    def __init__(self, device: CameraDevice, width: int = 640, height: int = 480, fps: int = 20):
        self.device = device
        self.fps = fps
        self._interval = 1.0 / max(1, fps)
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._cap = cv2.VideoCapture(int(device.id))
        if not self._cap.isOpened():
            raise NoDeviceError(f"Camera {device.id} could not be opened")
        self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
        self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
        self._cap.set(cv2.CAP_PROP_FPS, fps)

    @property
    def streaming(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _read(self) -> Optional[RawFrame]:
        with self._lock:
            ok, image = self._cap.read()
        if not ok or image is None:
            return None
        return RawFrame.from_array(image, pixel_format=PixelFormat.BGR.value)

    def capture(self) -> RawFrame:
        """
        Grab a single frame.

        Raises:
            CaptureError: If the camera does not deliver a frame
        """
        frame = self._read()
        if frame is None:
            raise CaptureError(f"Camera {self.device.id} did not deliver a frame")
        return frame

    def start(self, callback: FrameCallback) -> None:
        if self.streaming:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, args=(callback,), name=f"camera-{self.device.id}", daemon=True
        )
        self._thread.start()
        logger.info(f"Camera {self.device.id} streaming at {self.fps} fps")

    def _run(self, callback: FrameCallback) -> None:
        while not self._stop.is_set():
            started = time.monotonic()
            frame = self._read()
            if frame is None:
                # brief wait and retry
                time.sleep(0.05)
                continue
            try:
                callback(frame)
            except Exception as e:
                logger.error(f"Frame callback failed: {e}", exc_info=True)
            remaining = self._interval - (time.monotonic() - started)
            if remaining > 0:
                self._stop.wait(remaining)

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
            logger.info(f"Camera {self.device.id} stream stopped")

    def release(self) -> None:
        self.stop()
        with self._lock:
            self._cap.release()

    def __enter__(self) -> "OpenCVCamera":
        return self

    def __exit__(self, *exc) -> None:
        self.release()
