"""
Core configuration and utilities for Plant Doctor.
"""

from plantdoc.core.deps import (
    depends_captured_analyzer,
    depends_history,
    depends_live_analyzer,
    depends_live_session,
    depends_model_manager,
    depends_taxonomy,
)

__all__ = [
    "depends_captured_analyzer",
    "depends_history",
    "depends_live_analyzer",
    "depends_live_session",
    "depends_model_manager",
    "depends_taxonomy",
]
