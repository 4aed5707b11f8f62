"""
Analysis history for Plant Doctor.

Keeps the most recent captured results in a JSON file, newest first.
History is a convenience: write failures are logged and reported, read
failures yield an empty history.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from plantdoc.core.config import get_settings
from plantdoc.models.diagnosis import DiagnosisResult

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


class HistoryStore:
    """
    JSON-file backed list of saved DiagnosisResults.

    Example:
        >>> store = HistoryStore("data/analysis_history.json")
        >>> store.save(result)
        True
        >>> store.entries()[0] == result
        True
    """

    def __init__(self, path: str, limit: int = DEFAULT_HISTORY_LIMIT):
        self._path = Path(path)
        self._limit = limit
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_raw(self) -> list:
        if not self._path.exists():
            return []
        with open(self._path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError("history file does not contain a list")
        return data

    def entries(self) -> list[DiagnosisResult]:
        """Saved results, newest first. Unreadable history is empty."""
        with self._lock:
            try:
                raw = self._read_raw()
            except (OSError, ValueError) as e:
                logger.error(f"Error getting saved results: {e}")
                return []

        results = []
        for item in raw:
            try:
                results.append(DiagnosisResult.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed history entry: {e.error_count()} errors")
        return results

    def save(self, result: DiagnosisResult) -> bool:
        """
        Prepend a result and trim to ``limit`` entries.

        Returns:
            True if the history file was written, False otherwise
        """
        with self._lock:
            try:
                raw = self._read_raw()
            except (OSError, ValueError) as e:
                logger.warning(f"Discarding unreadable history: {e}")
                raw = []

            raw.insert(0, result.model_dump(mode="json"))
            raw = raw[: self._limit]

            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
                with open(tmp_path, "w", encoding="utf-8") as f:
                    json.dump(raw, f, ensure_ascii=False, indent=2)
                os.replace(tmp_path, self._path)
            except OSError as e:
                logger.error(f"Error saving analysis result: {e}")
                return False

        logger.info(f"Analysis result saved ({len(raw)} in history)")
        return True

    def clear(self) -> None:
        with self._lock:
            try:
                self._path.unlink()
            except FileNotFoundError:
                pass


# Module-level singleton instance
_history_store: Optional[HistoryStore] = None


def get_history_store() -> HistoryStore:
    """Get the singleton HistoryStore at ``settings.history_path``."""
    global _history_store
    if _history_store is None:
        settings = get_settings()
        _history_store = HistoryStore(settings.history_path, limit=settings.history_limit)
    return _history_store


def reset_history_store() -> None:
    global _history_store
    _history_store = None
