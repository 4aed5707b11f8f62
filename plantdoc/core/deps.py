"""
FastAPI dependency injection utilities for Plant Doctor.

This module provides dependency injection functions for FastAPI routes.
"""

from typing import TYPE_CHECKING

from fastapi import Depends

if TYPE_CHECKING:
    from plantdoc.services.history import HistoryStore
    from plantdoc.services.model_manager import ModelManager
    from plantdoc.services.taxonomy_service import TaxonomyService
    from plantdoc.worker.captured import CapturedAnalyzer
    from plantdoc.worker.live import LiveAnalyzer, LiveSession


# Lazy imports to avoid circular dependency
def _get_taxonomy_service():
    from plantdoc.services.taxonomy_service import get_taxonomy_service
    return get_taxonomy_service()


def _get_model_manager():
    from plantdoc.services.model_manager import get_model_manager
    return get_model_manager()


def _get_captured_analyzer():
    from plantdoc.worker.captured import get_captured_analyzer
    return get_captured_analyzer()


def _get_live_analyzer():
    from plantdoc.worker.live import get_live_analyzer
    return get_live_analyzer()


def _get_live_session():
    from plantdoc.worker.live import get_live_session
    return get_live_session()


def _get_history_store():
    from plantdoc.services.history import get_history_store
    return get_history_store()


async def depends_taxonomy(
    service: "TaxonomyService" = Depends(_get_taxonomy_service),
) -> "TaxonomyService":
    """
    FastAPI dependency injection for TaxonomyService.

    Usage in routes:
        @router.get("/{index}")
        async def get_entry(
            index: int,
            taxonomy: TaxonomyService = Depends(depends_taxonomy)
        ):
            return taxonomy.get_by_index(index)

    Returns:
        TaxonomyService: The singleton taxonomy service instance
    """
    return service


async def depends_model_manager(
    manager: "ModelManager" = Depends(_get_model_manager),
) -> "ModelManager":
    """FastAPI dependency injection for the shared ModelManager."""
    return manager


async def depends_captured_analyzer(
    analyzer: "CapturedAnalyzer" = Depends(_get_captured_analyzer),
) -> "CapturedAnalyzer":
    """FastAPI dependency injection for CapturedAnalyzer."""
    return analyzer


async def depends_live_analyzer(
    analyzer: "LiveAnalyzer" = Depends(_get_live_analyzer),
) -> "LiveAnalyzer":
    return analyzer


async def depends_live_session(
    session: "LiveSession" = Depends(_get_live_session),
) -> "LiveSession":
    return session


async def depends_history(
    store: "HistoryStore" = Depends(_get_history_store),
) -> "HistoryStore":
    """
    FastAPI dependency injection for HistoryStore.

    Returns:
        HistoryStore: The singleton analysis history store
    """
    return store
