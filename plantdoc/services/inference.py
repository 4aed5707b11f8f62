"""
Inference invocation for Plant Doctor.

Calls the opaque engine with a validated input tensor and validates the
output before anything downstream sees it.
"""

import logging
import threading
from typing import Optional

import numpy as np
from pydantic import ValidationError

from plantdoc.core.errors import InferenceError, ModelNotReadyError
from plantdoc.models.diagnosis import ProbabilityVector
from plantdoc.models.frames import TENSOR_SHAPE, TensorBuffer
from plantdoc.services.model_manager import ModelHandle

logger = logging.getLogger(__name__)

# Live and captured analysis share one engine; physical calls never overlap
_ENGINE_LOCK = threading.Lock()


class InferenceInvoker:
    """
    Runs the engine and returns a validated ProbabilityVector.

    Args:
        tolerance: Allowed drift of the output sum from 1.0
        lock: Mutex serialising engine calls (shared process-wide by default)
    """

    def __init__(self, tolerance: float = 0.01, lock: Optional[threading.Lock] = None):
        self._tolerance = tolerance
        self._lock = lock if lock is not None else _ENGINE_LOCK

    def infer(self, handle: Optional[ModelHandle], tensor: TensorBuffer) -> ProbabilityVector:
        """
        Invoke the engine on one tensor.

        Args:
            handle: Ready model handle
            tensor: 128x128x3 uint8 input

        Returns:
            ProbabilityVector of taxonomy length

        Raises:
            ModelNotReadyError: If no handle is available
            InferenceError: On shape mismatch, engine fault or malformed output
        """
        if handle is None:
            raise ModelNotReadyError("Model not loaded")

        if not tensor.is_valid():
            raise InferenceError(
                f"Input tensor shape {tensor.shape} ({tensor.data.dtype}) "
                f"does not match {TENSOR_SHAPE} (uint8)"
            )

        with self._lock:
            try:
                raw = handle.engine.classify(tensor.batched())
            except Exception as e:
                raise InferenceError(f"Engine call failed: {e}") from e

        return self.validate_output(raw)

    def validate_output(self, raw) -> ProbabilityVector:
        """
        Flatten engine output and validate it as a ProbabilityVector.

        A leading batch dimension of 1 is squeezed; any other length
        mismatch is an InferenceError, never truncated or padded.
        """
        try:
            values = np.asarray(raw, dtype=np.float64).reshape(-1)
        except (TypeError, ValueError) as e:
            raise InferenceError(f"Malformed engine output: {e}") from e

        try:
            return ProbabilityVector(
                values=tuple(float(v) for v in values), tolerance=self._tolerance
            )
        except ValidationError as e:
            messages = "; ".join(err["msg"] for err in e.errors())
            logger.debug(f"Rejected engine output {values.tolist()}: {messages}")
            raise InferenceError(f"Invalid probability vector: {messages}") from e
