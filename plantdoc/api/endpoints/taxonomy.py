"""
Taxonomy API endpoints for Plant Doctor.

This module provides REST API endpoints for querying the fixed class
taxonomy the model was trained on.
"""

from fastapi import APIRouter, Depends, HTTPException, Path, Query

from plantdoc.core import depends_taxonomy
from plantdoc.models.taxonomy import TaxonomyEntry
from plantdoc.services.taxonomy_service import TaxonomyNotFoundError, TaxonomyService

router = APIRouter(prefix="/api/v1/taxonomy", tags=["taxonomy"])


@router.get("")
async def list_taxonomy(
    taxonomy: TaxonomyService = Depends(depends_taxonomy),
) -> list[TaxonomyEntry]:
    """All taxonomy entries in model output order."""
    return taxonomy.get_all()


@router.get("/search")
async def search_taxonomy(
    q: str = Query(..., min_length=1, max_length=100, description="Class identity or display label"),
    taxonomy: TaxonomyService = Depends(depends_taxonomy),
) -> list[TaxonomyEntry]:
    """
    Search taxonomy entries by class identity or display label.

    Example:
        GET /api/v1/taxonomy/search?q=Apple Black Rot
        Response:
        [
            {
                "index": 1,
                "class_identity": "Apple___Black_rot",
                "display_label": "Apple Black Rot",
                "is_healthy": false,
                "default_symptoms": [...]
            }
        ]

    Raises:
        HTTPException: 404 when nothing matches
    """
    results = []

    try:
        results.append(taxonomy.get_by_label(q))
    except TaxonomyNotFoundError:
        pass

    try:
        result = taxonomy.get_by_identity(q)
        if result not in results:
            results.append(result)
    except TaxonomyNotFoundError:
        pass

    if not results:
        raise HTTPException(
            status_code=404,
            detail=f"Taxonomy entry not found for query: '{q}'"
        )

    return results


@router.get("/{index}")
async def get_taxonomy_entry(
    index: int = Path(..., ge=0, le=1000, description="Model output index"),
    taxonomy: TaxonomyService = Depends(depends_taxonomy),
) -> TaxonomyEntry:
    """
    Get a taxonomy entry by model output index.

    Raises:
        HTTPException: 404 when the index is outside the taxonomy
    """
    try:
        return taxonomy.get_by_index(index)
    except TaxonomyNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
