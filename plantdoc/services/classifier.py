"""
Classification of probability vectors for Plant Doctor.

Pure functions: arg-max decision, confidence-derived severity and the
per-class breakdown shown alongside a result.
"""

from typing import Optional

from plantdoc.core.taxonomy import TAXONOMY
from plantdoc.models.diagnosis import (
    ClassProbability,
    HealthStatus,
    Prediction,
    ProbabilityVector,
    SeverityLevel,
)

# Fixed thresholds, applied to disease predictions only
HIGH_SEVERITY_THRESHOLD = 0.7
MEDIUM_SEVERITY_THRESHOLD = 0.4


def classify(vector: ProbabilityVector) -> Prediction:
    """
    Pick the most probable class.

    Linear scan; on exact ties the lowest index wins.

    Example:
        >>> classify(ProbabilityVector(values=(0.3, 0.3, 0.3, 0.1))).class_index
        0
    """
    best_index = 0
    best_value = vector[0]
    for i in range(1, len(vector)):
        if vector[i] > best_value:
            best_index = i
            best_value = vector[i]

    entry = TAXONOMY[best_index]
    return Prediction(
        class_index=best_index,
        class_identity=entry.class_identity,
        label=entry.display_label,
        confidence=best_value,
    )


def severity_for(prediction: Prediction) -> Optional[SeverityLevel]:
    """
    Severity of a disease prediction; None for the healthy class.

    confidence > 0.7 -> High, > 0.4 -> Medium, else Low.
    """
    if TAXONOMY[prediction.class_index].is_healthy:
        return None
    if prediction.confidence > HIGH_SEVERITY_THRESHOLD:
        return SeverityLevel.HIGH
    if prediction.confidence > MEDIUM_SEVERITY_THRESHOLD:
        return SeverityLevel.MEDIUM
    return SeverityLevel.LOW


def health_status(prediction: Prediction) -> HealthStatus:
    if TAXONOMY[prediction.class_index].is_healthy:
        return HealthStatus.HEALTHY
    return HealthStatus.DISEASED


def probability_breakdown(vector: ProbabilityVector) -> list[ClassProbability]:
    return [
        ClassProbability(
            class_identity=entry.class_identity,
            label=entry.display_label,
            probability=vector[entry.index],
        )
        for entry in TAXONOMY
    ]
