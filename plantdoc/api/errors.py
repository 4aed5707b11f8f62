"""
Translation of Plant Doctor errors into HTTP responses.
"""

import logging

from fastapi import HTTPException

from plantdoc.core.errors import (
    AnalysisTimeoutError,
    CaptureError,
    InferenceError,
    LoadError,
    ModelNotReadyError,
    NoDeviceError,
    PlantDocError,
    PreprocessError,
)

logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases
_STATUS_CODES: list[tuple[type[PlantDocError], int]] = [
    (PreprocessError, 400),
    (ModelNotReadyError, 503),
    (LoadError, 503),
    (NoDeviceError, 503),
    (CaptureError, 503),
    (AnalysisTimeoutError, 504),
    (InferenceError, 500),
]


def to_http_exception(exc: PlantDocError) -> HTTPException:
    """Map a domain error to an HTTPException with a matching status code."""
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return HTTPException(
                status_code=status_code,
                detail=f"{type(exc).__name__}: {exc}",
            )
    logger.error(f"Unmapped error reached the API: {type(exc).__name__}: {exc}")
    return HTTPException(status_code=500, detail=f"{type(exc).__name__}: {exc}")
