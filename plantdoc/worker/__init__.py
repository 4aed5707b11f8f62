"""
Analysis workers for Plant Doctor.

Live-preview and captured-photo analysis share one pipeline and one
model manager.
"""

from plantdoc.worker.captured import CapturedAnalyzer
from plantdoc.worker.live import LatestResultSlot, LiveAnalyzer, LiveSession
from plantdoc.worker.pipeline import AnalysisPipeline, AnalysisRun, AnalysisState

__all__ = [
    "AnalysisPipeline",
    "AnalysisRun",
    "AnalysisState",
    "CapturedAnalyzer",
    "LatestResultSlot",
    "LiveAnalyzer",
    "LiveSession",
]
