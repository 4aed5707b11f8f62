"""
Taxonomy data models for Plant Doctor.

This module defines the Pydantic model for one row of the class taxonomy
the classifier can output.
"""

from pydantic import BaseModel, ConfigDict, Field


class TaxonomyEntry(BaseModel):
    """Single taxonomy entry: one output class of the model."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(..., ge=0, description="Position in the model output vector")
    class_identity: str = Field(
        ..., description="Model label and knowledge store key (e.g. 'Apple___Black_rot')"
    )
    display_label: str = Field(..., description="Human readable name")
    is_healthy: bool = Field(
        default=False, description="True for the class that never carries a severity"
    )
    default_symptoms: list[str] = Field(
        default_factory=list,
        description="Symptom text shown when the knowledge store has no record",
    )
