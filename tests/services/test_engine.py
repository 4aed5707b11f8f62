"""
Unit tests for the TFLite engine adapter, using a stub interpreter.
"""

from unittest.mock import MagicMock

import numpy as np

from plantdoc.services.engine import TFLiteEngine


def _interpreter(input_detail, output_detail, output):
    interpreter = MagicMock()
    interpreter.get_input_details.return_value = [input_detail]
    interpreter.get_output_details.return_value = [output_detail]
    interpreter.get_tensor.return_value = output
    return interpreter


def _batch(value=255):
    return np.full((1, 128, 128, 3), value, dtype=np.uint8)


def test_float_model_gets_scaled_input():
    interpreter = _interpreter(
        {"index": 0, "dtype": np.float32, "quantization": (0.0, 0)},
        {"index": 5, "dtype": np.float32, "quantization": (0.0, 0)},
        np.array([[0.1, 0.85, 0.03, 0.02]], dtype=np.float32),
    )
    engine = TFLiteEngine(interpreter)

    scores = engine.classify(_batch(255))

    interpreter.allocate_tensors.assert_called_once()
    index, tensor = interpreter.set_tensor.call_args[0]
    assert index == 0
    assert tensor.dtype == np.float32
    assert float(tensor.max()) == 1.0
    interpreter.invoke.assert_called_once()
    assert np.allclose(scores, [0.1, 0.85, 0.03, 0.02])


def test_quantized_output_is_dequantized():
    interpreter = _interpreter(
        {"index": 0, "dtype": np.uint8, "quantization": (0.0, 0)},
        {
            "index": 1,
            "dtype": np.uint8,
            "quantization_parameters": {
                "scales": np.array([1 / 256], dtype=np.float32),
                "zero_points": np.array([0]),
            },
        },
        np.array([[0, 192, 64, 0]], dtype=np.uint8),
    )
    engine = TFLiteEngine(interpreter)

    scores = engine.classify(_batch(10))

    tensor = interpreter.set_tensor.call_args[0][1]
    assert tensor.dtype == np.uint8
    assert int(tensor[0, 0, 0, 0]) == 10
    assert np.allclose(scores, [0.0, 0.75, 0.25, 0.0])
