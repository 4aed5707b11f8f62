"""
Canonical class taxonomy of the bundled apple leaf model.

Every component that needs a class index, identity, display label or
default symptom text reads it from ``TAXONOMY``. The order matches the
model output vector and must never change without retraining.
"""

from plantdoc.models.taxonomy import TaxonomyEntry

TAXONOMY: tuple[TaxonomyEntry, ...] = (
    TaxonomyEntry(
        index=0,
        class_identity="Apple___Apple_scab",
        display_label="Apple Scab",
        default_symptoms=[
            "Olive-green to brown velvety spots on leaves",
            "Dark, scabby lesions on fruit",
            "Leaf curling and early leaf drop",
        ],
    ),
    TaxonomyEntry(
        index=1,
        class_identity="Apple___Black_rot",
        display_label="Apple Black Rot",
        default_symptoms=[
            "Purple-bordered 'frog-eye' spots on leaves",
            "Expanding brown rot at the blossom end of fruit",
            "Sunken cankers on limbs",
        ],
    ),
    TaxonomyEntry(
        index=2,
        class_identity="Apple___Cedar_apple_rust",
        display_label="Cedar Apple Rust",
        default_symptoms=[
            "Bright yellow-orange spots on upper leaf surface",
            "Tube-like structures on leaf undersides",
            "Deformed fruit with orange lesions",
        ],
    ),
    TaxonomyEntry(
        index=3,
        class_identity="Apple___healthy",
        display_label="Healthy",
        is_healthy=True,
    ),
)

TAXONOMY_SIZE = len(TAXONOMY)

# Python model input: 128x128 RGB
MODEL_INPUT_SIZE = 128
MODEL_CHANNELS = 3
