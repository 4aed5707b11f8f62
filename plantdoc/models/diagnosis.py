"""
Diagnosis data models for Plant Doctor.

This module contains Pydantic models for the analysis pipeline: the
validated probability vector, predictions, disease records fetched from
the knowledge store and the final diagnosis result.
"""

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from plantdoc.core.taxonomy import TAXONOMY_SIZE


class SeverityLevel(str, Enum):
    """Confidence-derived severity of a disease prediction."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class SourceMode(str, Enum):
    """Which analysis mode produced a result."""

    LIVE = "live"
    CAPTURED = "captured"


class HealthStatus(str, Enum):
    HEALTHY = "Healthy"
    DISEASED = "Diseased"


class ProbabilityVector(BaseModel):
    """
    Raw engine output, one score per taxonomy entry.

    Validation fails (never truncates or pads) when the length differs
    from the taxonomy size, a value is outside [0, 1], or the values do
    not sum to 1 within ``tolerance``.
    """

    values: tuple[float, ...] = Field(..., description="Per-class probabilities")
    tolerance: float = Field(default=0.01, ge=0.0, exclude=True)

    @field_validator("values")
    @classmethod
    def check_values(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        if len(v) != TAXONOMY_SIZE:
            raise ValueError(
                f"expected {TAXONOMY_SIZE} probabilities, got {len(v)}"
            )
        for i, p in enumerate(v):
            if not math.isfinite(p) or p < 0.0 or p > 1.0:
                raise ValueError(f"probability at index {i} out of range: {p}")
        return v

    @model_validator(mode="after")
    def check_sum(self) -> "ProbabilityVector":
        total = math.fsum(self.values)
        if abs(total - 1.0) > self.tolerance:
            raise ValueError(
                f"probabilities sum to {total:.4f}, expected 1 ± {self.tolerance}"
            )
        return self

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> float:
        return self.values[index]


class Prediction(BaseModel):
    """Arg-max decision over a probability vector."""

    class_index: int = Field(..., ge=0, lt=TAXONOMY_SIZE, description="Winning index")
    class_identity: str = Field(..., description="Taxonomy class identity")
    label: str = Field(..., description="Display label")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Winning probability")


class ClassProbability(BaseModel):
    """One row of the per-class probability breakdown."""

    class_identity: str
    label: str
    probability: float = Field(..., ge=0.0, le=1.0)


class DiseaseRecord(BaseModel):
    """Descriptive knowledge about a disease, keyed by class identity."""

    description: Optional[str] = Field(None, description="Disease description")
    treatment: list[str] = Field(default_factory=list, description="Treatment steps")
    symptoms: list[str] = Field(default_factory=list, description="Visible symptoms")

    @field_validator("treatment", "symptoms", mode="before")
    @classmethod
    def coerce_text_list(cls, v: Any) -> Any:
        """Accept a single string or null where a list is expected."""
        if v is None:
            return []
        if isinstance(v, str):
            return [line.strip() for line in v.splitlines() if line.strip()]
        return v


class Recommendation(BaseModel):
    """Follow-up action suggested for a diagnosis."""

    type: str = Field(..., description="prevention, urgent, treatment or care")
    title: str
    description: str
    priority: str = Field(..., description="low, medium or high")


class DiagnosisResult(BaseModel):
    """One analysis outcome from either mode."""

    prediction: Prediction
    severity: Optional[SeverityLevel] = Field(
        None, description="Only set for disease predictions"
    )
    disease_record: Optional[DiseaseRecord] = Field(
        None, description="Knowledge store data, absent on lookup failure or healthy"
    )
    source_mode: SourceMode
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    health_status: HealthStatus
    probabilities: list[ClassProbability] = Field(default_factory=list)
    symptoms: list[str] = Field(
        default_factory=list,
        description="Record symptoms, or the taxonomy defaults when no record is available",
    )
    recommendations: list[Recommendation] = Field(default_factory=list)
    enrichment_error: Optional[str] = Field(
        None, description="Why disease_record is missing, if a lookup was attempted"
    )
    inference_time_ms: int = Field(default=0, ge=0, description="Pipeline time (ms)")

    @model_validator(mode="after")
    def healthy_has_no_disease_data(self) -> "DiagnosisResult":
        if self.health_status is HealthStatus.HEALTHY and (
            self.severity is not None or self.disease_record is not None
        ):
            raise ValueError("healthy results carry neither severity nor disease record")
        return self


class ModelInfo(BaseModel):
    """Describes the loaded model for status endpoints."""

    model_config = {"protected_namespaces": ()}

    model_path: str
    state: str
    failure_reason: Optional[str] = None
    input_size: int
    channels: int
    supported_classes: list[str]

