"""
Live preview API endpoints for Plant Doctor.

The camera streams frames into the LiveAnalyzer in the background;
clients poll the latest result.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from plantdoc.api.errors import to_http_exception
from plantdoc.core import depends_captured_analyzer, depends_live_analyzer, depends_live_session
from plantdoc.core.errors import NoDeviceError
from plantdoc.models.diagnosis import DiagnosisResult
from plantdoc.worker.captured import CapturedAnalyzer
from plantdoc.worker.live import LiveAnalyzer, LiveSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/live", tags=["live"])


class LiveStatus(BaseModel):
    running: bool
    device_id: Optional[str] = None
    facing: Optional[str] = None


class LiveStatsResponse(BaseModel):
    received: int
    processed: int
    dropped_busy: int
    dropped_not_ready: int
    failed: int
    busy: bool


def _status(session: LiveSession) -> LiveStatus:
    camera = session.camera
    if camera is None:
        return LiveStatus(running=False)
    return LiveStatus(
        running=session.running,
        device_id=camera.device.id,
        facing=camera.device.facing.value,
    )


@router.post("/start", response_model=LiveStatus)
async def start_live(
    session: LiveSession = Depends(depends_live_session),
    captured: CapturedAnalyzer = Depends(depends_captured_analyzer),
) -> LiveStatus:
    """
    Select a camera (with retries) and start live analysis.

    Raises:
        HTTPException: 503 when no camera device is found
    """
    try:
        device = await session.start()
    except NoDeviceError as e:
        raise to_http_exception(e) from e

    captured.set_capture(session.capture)
    logger.info(f"Live analysis started on camera {device.id}")
    return _status(session)


@router.post("/stop", response_model=LiveStatus)
async def stop_live(
    session: LiveSession = Depends(depends_live_session),
    captured: CapturedAnalyzer = Depends(depends_captured_analyzer),
) -> LiveStatus:
    captured.set_capture(None)
    await asyncio.to_thread(session.stop)
    logger.info("Live analysis stopped")
    return _status(session)


@router.get("/status", response_model=LiveStatus)
async def live_status(
    session: LiveSession = Depends(depends_live_session),
) -> LiveStatus:
    return _status(session)


@router.get("/latest", response_model=DiagnosisResult)
async def latest_result(
    analyzer: LiveAnalyzer = Depends(depends_live_analyzer),
) -> DiagnosisResult:
    """
    Newest live result.

    Raises:
        HTTPException: 404 until the first frame has been analyzed
    """
    result = analyzer.latest.read()
    if result is None:
        raise HTTPException(status_code=404, detail="No live result available yet")
    return result


@router.get("/stats", response_model=LiveStatsResponse)
async def live_stats(
    analyzer: LiveAnalyzer = Depends(depends_live_analyzer),
) -> LiveStatsResponse:
    """Frame counters: analyzed, dropped while busy or not ready, failed."""
    stats = analyzer.stats()
    return LiveStatsResponse(
        received=stats.received,
        processed=stats.processed,
        dropped_busy=stats.dropped_busy,
        dropped_not_ready=stats.dropped_not_ready,
        failed=stats.failed,
        busy=analyzer.busy,
    )
