"""
Result enrichment for Plant Doctor.

Merges a model prediction with the disease record held by the knowledge
store. Enrichment is never fatal: on any lookup failure the result is
returned with model-only data, ``disease_record=None`` and the reason in
``enrichment_error``.
"""

import asyncio
import logging
from typing import Optional

from plantdoc.core.config import get_settings
from plantdoc.core.errors import EnrichmentError
from plantdoc.core.taxonomy import TAXONOMY
from plantdoc.models.diagnosis import (
    ClassProbability,
    DiagnosisResult,
    DiseaseRecord,
    Prediction,
    Recommendation,
    SeverityLevel,
    SourceMode,
)
from plantdoc.services.classifier import health_status, severity_for
from plantdoc.services.knowledge_store import KnowledgeStore, get_knowledge_store

logger = logging.getLogger(__name__)


def build_recommendations(
    prediction: Prediction,
    severity: Optional[SeverityLevel],
    record: Optional[DiseaseRecord],
) -> list[Recommendation]:
    """
    Suggest follow-up actions for a diagnosis.

    Healthy plants get a single prevention item. Disease predictions get
    an urgent (High severity) or regular treatment item built from the
    first treatment step, followed by a general care item.
    """
    if TAXONOMY[prediction.class_index].is_healthy:
        return [
            Recommendation(
                type="prevention",
                title="Maintain Plant Health",
                description=(
                    "Continue current care practices. Monitor regularly for "
                    "early signs of disease."
                ),
                priority="low",
            )
        ]

    first_step = record.treatment[0] if record and record.treatment else None
    if severity is SeverityLevel.HIGH:
        main = Recommendation(
            type="urgent",
            title=f"Immediate Treatment for {prediction.label}",
            description=first_step or "Seek immediate treatment",
            priority="high",
        )
    else:
        main = Recommendation(
            type="treatment",
            title=f"Treatment for {prediction.label}",
            description=first_step or "Apply appropriate treatment",
            priority="medium",
        )

    care = Recommendation(
        type="care",
        title="Improve Plant Care",
        description=(
            "Ensure proper watering, nutrition, and spacing to prevent disease spread."
        ),
        priority="medium",
    )
    return [main, care]


class ResultEnricher:
    """
    Builds DiagnosisResults, fetching disease records by class identity.

    Successful lookups are cached so the live path can attach records
    without doing I/O on the camera thread.
    """

    def __init__(self, store: KnowledgeStore, timeout: float = 5.0):
        self._store = store
        self._timeout = timeout
        self._cache: dict[str, DiseaseRecord] = {}

    def cached_record(self, class_identity: str) -> Optional[DiseaseRecord]:
        return self._cache.get(class_identity)

    async def _lookup(self, class_identity: str) -> tuple[Optional[DiseaseRecord], Optional[str]]:
        """Return (record, error); never raises except on cancellation."""
        try:
            record = await asyncio.wait_for(
                self._store.lookup(class_identity), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"Knowledge lookup for '{class_identity}' timed out")
            return None, f"Knowledge store lookup timed out after {self._timeout}s"
        except EnrichmentError as e:
            logger.warning(f"Knowledge lookup for '{class_identity}' failed: {e}")
            return None, str(e)
        except Exception as e:
            logger.error(
                f"Unexpected error during knowledge lookup for '{class_identity}': {e}",
                exc_info=True,
            )
            return None, f"Unexpected error: {e}"

        if record is None:
            return None, f"No disease record found for '{class_identity}'"

        self._cache[class_identity] = record
        return record, None

    async def enrich(
        self,
        prediction: Prediction,
        probabilities: Optional[list[ClassProbability]] = None,
        source_mode: SourceMode = SourceMode.CAPTURED,
        inference_time_ms: int = 0,
    ) -> DiagnosisResult:
        """
        Merge a prediction with its disease record.

        Healthy predictions are never looked up. Lookup failure, absence
        or timeout leaves ``disease_record`` empty; this method does not
        raise for them.
        """
        record: Optional[DiseaseRecord] = None
        error: Optional[str] = None

        if not TAXONOMY[prediction.class_index].is_healthy:
            record, error = await self._lookup(prediction.class_identity)

        return self._build(prediction, record, error, probabilities, source_mode, inference_time_ms)

    def enrich_cached(
        self,
        prediction: Prediction,
        probabilities: Optional[list[ClassProbability]] = None,
        source_mode: SourceMode = SourceMode.LIVE,
        inference_time_ms: int = 0,
    ) -> DiagnosisResult:
        """Like ``enrich`` but only uses records already cached; no I/O."""
        record = None
        if not TAXONOMY[prediction.class_index].is_healthy:
            record = self._cache.get(prediction.class_identity)
        return self._build(prediction, record, None, probabilities, source_mode, inference_time_ms)

    async def prefetch(self, class_identity: str) -> None:
        """Warm the cache for a class identity; failures are only logged."""
        if class_identity in self._cache:
            return
        _, error = await self._lookup(class_identity)
        if error:
            logger.debug(f"Prefetch of '{class_identity}' skipped: {error}")

    def _build(
        self,
        prediction: Prediction,
        record: Optional[DiseaseRecord],
        error: Optional[str],
        probabilities: Optional[list[ClassProbability]],
        source_mode: SourceMode,
        inference_time_ms: int,
    ) -> DiagnosisResult:
        severity = severity_for(prediction)
        if record is not None:
            symptoms = list(record.symptoms)
        else:
            symptoms = list(TAXONOMY[prediction.class_index].default_symptoms)

        return DiagnosisResult(
            prediction=prediction,
            severity=severity,
            disease_record=record,
            source_mode=source_mode,
            health_status=health_status(prediction),
            probabilities=probabilities or [],
            symptoms=symptoms,
            recommendations=build_recommendations(prediction, severity, record),
            enrichment_error=error,
            inference_time_ms=inference_time_ms,
        )


# Module-level singleton instance
_result_enricher: Optional[ResultEnricher] = None


def get_result_enricher() -> ResultEnricher:
    """Get the singleton ResultEnricher bound to the configured knowledge store."""
    global _result_enricher
    if _result_enricher is None:
        _result_enricher = ResultEnricher(
            get_knowledge_store(), timeout=get_settings().enrichment_timeout_seconds
        )
    return _result_enricher


def reset_result_enricher() -> None:
    """Reset the ResultEnricher singleton (used by tests)."""
    global _result_enricher
    _result_enricher = None
