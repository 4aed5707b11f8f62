"""
Inference engine boundary.

The network is an opaque capability: ``classify(tensor) -> scores``.
``TFLiteEngine`` binds that capability to the bundled TensorFlow Lite
model; tests and alternative runtimes supply their own engine objects.
"""

import logging
from typing import Callable, Protocol, Sequence

import numpy as np

logger = logging.getLogger(__name__)


class InferenceEngine(Protocol):
    """Anything that turns a batched input tensor into class scores."""

    def classify(self, tensor: np.ndarray) -> Sequence[float]:
        ...


# Builds an engine from a model path; may block and may raise
EngineLoader = Callable[[str], InferenceEngine]


def _scale_zero(detail: dict) -> tuple[float, int]:
    """Read (scale, zero_point) quantization parameters of a tensor."""
    quant = detail.get("quantization_parameters") or {}
    scales = quant.get("scales")
    zero_points = quant.get("zero_points")
    if scales is not None and len(scales):
        zero = int(zero_points[0]) if zero_points is not None and len(zero_points) else 0
        return float(scales[0]) or 1.0, zero

    scale, zero = detail.get("quantization", (0.0, 0))
    return float(scale or 1.0), int(zero or 0)


class TFLiteEngine:
    """
    TensorFlow Lite interpreter wrapped as an InferenceEngine.

    Handles uint8-quantized and float32 input/output tensors. Not safe for
    concurrent ``classify`` calls; the InferenceInvoker serialises them.
    """

    def __init__(self, interpreter):
        self._interpreter = interpreter
        self._interpreter.allocate_tensors()
        self._input = self._interpreter.get_input_details()[0]
        self._output = self._interpreter.get_output_details()[0]
        self._input_scale, self._input_zero = _scale_zero(self._input)
        self._output_scale, self._output_zero = _scale_zero(self._output)

    @classmethod
    def from_path(cls, model_path: str) -> "TFLiteEngine":
        """Load a .tflite file with tflite-runtime."""
        from tflite_runtime.interpreter import Interpreter

        logger.info(f"Loading TFLite model from {model_path}")
        return cls(Interpreter(model_path=model_path))

    def _to_input(self, tensor: np.ndarray) -> np.ndarray:
        dtype = self._input["dtype"]
        if dtype == np.uint8:
            if self._input_scale == 1.0 and self._input_zero == 0:
                return tensor.astype(np.uint8)
            scaled = tensor.astype(np.float32) / 255.0 / self._input_scale + self._input_zero
            return np.clip(np.round(scaled), 0, 255).astype(np.uint8)
        return tensor.astype(np.float32) / 255.0

    def classify(self, tensor: np.ndarray) -> Sequence[float]:
        self._interpreter.set_tensor(self._input["index"], self._to_input(tensor))
        self._interpreter.invoke()
        output = self._interpreter.get_tensor(self._output["index"])
        if self._output["dtype"] == np.uint8:
            output = (output.astype(np.float32) - self._output_zero) * self._output_scale
        return np.asarray(output, dtype=np.float32).reshape(-1).tolist()


def load_tflite_engine(model_path: str) -> InferenceEngine:
    """Default EngineLoader."""
    return TFLiteEngine.from_path(model_path)
