"""
Analysis history API endpoints for Plant Doctor.
"""

from fastapi import APIRouter, Depends, Query

from plantdoc.core import depends_history
from plantdoc.models.diagnosis import DiagnosisResult
from plantdoc.services.history import HistoryStore

router = APIRouter(prefix="/api/v1/history", tags=["history"])


@router.get("", response_model=list[DiagnosisResult])
async def list_history(
    limit: int = Query(50, ge=1, le=50, description="Maximum results to return"),
    history: HistoryStore = Depends(depends_history),
) -> list[DiagnosisResult]:
    """Saved captured results, newest first."""
    return history.entries()[:limit]


@router.delete("", status_code=204)
async def clear_history(
    history: HistoryStore = Depends(depends_history),
) -> None:
    history.clear()
