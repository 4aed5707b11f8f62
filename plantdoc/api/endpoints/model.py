"""
Model status API endpoints for Plant Doctor.
"""

from fastapi import APIRouter, Depends, HTTPException

from plantdoc.api.errors import to_http_exception
from plantdoc.core import depends_model_manager
from plantdoc.core.errors import LoadError
from plantdoc.models.diagnosis import ModelInfo
from plantdoc.services.model_manager import ModelManager

router = APIRouter(prefix="/api/v1/model", tags=["model"])


@router.get("", response_model=ModelInfo)
async def model_info(
    manager: ModelManager = Depends(depends_model_manager),
) -> ModelInfo:
    """
    Current model state.

    Example:
        GET /api/v1/model
        Response:
        {
            "model_path": "models/apple_model_final.tflite",
            "state": "ready",
            "failure_reason": null,
            "input_size": 128,
            "channels": 3,
            "supported_classes": ["Apple___Apple_scab", ...]
        }
    """
    return manager.info()


@router.post("/load", response_model=ModelInfo)
async def load_model(
    manager: ModelManager = Depends(depends_model_manager),
) -> ModelInfo:
    """
    Load the model, or retry after a failed load.

    Raises:
        HTTPException: 503 with the failure reason when loading fails
    """
    try:
        await manager.load()
    except LoadError as e:
        raise to_http_exception(e) from e
    return manager.info()


@router.post("/reset", response_model=ModelInfo)
async def reset_model(
    manager: ModelManager = Depends(depends_model_manager),
) -> ModelInfo:
    """
    Drop the loaded engine.

    Raises:
        HTTPException: 409 while a load is in progress
    """
    try:
        manager.reset()
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return manager.info()
