"""
Error taxonomy for the Plant Doctor analysis pipeline.

Each pipeline stage raises exactly one of these. Callers decide how
visible an error is: captured-photo analysis propagates everything,
live preview analysis swallows per-frame errors, and enrichment errors
never escalate past the enricher.
"""


class PlantDocError(Exception):
    """Base exception for all pipeline errors."""

    pass


class LoadError(PlantDocError):
    """
    Raised when the inference engine fails to load.

    Terminal until a caller explicitly calls ``ModelManager.load()`` again.
    """

    pass


class NoDeviceError(PlantDocError):
    """Raised when no camera device is found after all selection attempts."""

    pass


class PreprocessError(PlantDocError):
    """Raised when a frame cannot be converted into an input tensor."""

    pass


class InferenceError(PlantDocError):
    """Raised when the engine call fails or returns a malformed vector."""

    pass


class ModelNotReadyError(InferenceError):
    """Raised when inference is requested before the model is loaded."""

    pass


class EnrichmentError(PlantDocError):
    """
    Raised when the knowledge store is unreachable or misconfigured.

    Never escapes the ResultEnricher; a result without a disease record
    is still a complete result.
    """

    pass


class AnalysisTimeoutError(PlantDocError):
    """Raised when a captured-photo analysis exceeds its time budget."""

    pass


class CaptureError(PlantDocError):
    """Raised when an opened camera fails to deliver a frame."""

    pass
