"""
Diagnosis API endpoints for Plant Doctor.

Runs captured-photo analysis on an uploaded photo or on a frame grabbed
from the running live camera, and records each result in the history.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from plantdoc.api.errors import to_http_exception
from plantdoc.core import depends_captured_analyzer, depends_history
from plantdoc.core.errors import PlantDocError
from plantdoc.models.diagnosis import DiagnosisResult
from plantdoc.services.history import HistoryStore
from plantdoc.worker.captured import AnalysisSource, CapturedAnalyzer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/diagnose", tags=["diagnose"])

ALLOWED_CONTENT_TYPES = ["image/jpeg", "image/jpg", "image/png"]
# 10MB
MAX_FILE_SIZE = 10 * 1024 * 1024


async def _analyze(
    analyzer: CapturedAnalyzer,
    history: HistoryStore,
    source: AnalysisSource,
) -> DiagnosisResult:
    try:
        result = await analyzer.analyze(source)
    except PlantDocError as e:
        raise to_http_exception(e) from e

    await asyncio.to_thread(history.save, result)
    return result


@router.post("", response_model=DiagnosisResult)
async def diagnose_photo(
    file: UploadFile = File(..., description="Leaf photo (jpg, jpeg, png, max 10MB)"),
    analyzer: CapturedAnalyzer = Depends(depends_captured_analyzer),
    history: HistoryStore = Depends(depends_history),
) -> DiagnosisResult:
    """
    Analyze an uploaded leaf photo.

    Example:
        POST /api/v1/diagnose
        Content-Type: multipart/form-data

        Response:
        {
            "prediction": {
                "class_index": 1,
                "class_identity": "Apple___Black_rot",
                "label": "Apple Black Rot",
                "confidence": 0.85
            },
            "severity": "High",
            "disease_record": {...},
            "source_mode": "captured",
            ...
        }

    Raises:
        HTTPException: 400 for bad uploads or undecodable photos, 503 when
            the model is unavailable, 504 when the analysis times out
    """
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}. Allowed: {', '.join(ALLOWED_CONTENT_TYPES)}"
        )

    content = await file.read()
    file_size = len(content)

    if file_size > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File too large: {file_size} bytes. Maximum size: {MAX_FILE_SIZE} bytes"
        )

    if file_size == 0:
        raise HTTPException(status_code=400, detail="Empty file")

    logger.info(f"Diagnosing uploaded photo {file.filename} ({file_size} bytes)")
    return await _analyze(analyzer, history, content)


@router.post("/capture", response_model=DiagnosisResult)
async def diagnose_capture(
    analyzer: CapturedAnalyzer = Depends(depends_captured_analyzer),
    history: HistoryStore = Depends(depends_history),
) -> DiagnosisResult:
    """
    Capture a frame from the live camera and analyze it.

    Raises:
        HTTPException: 503 when no camera is running
    """
    return await _analyze(analyzer, history, None)
