"""
Image buffers flowing through the analysis pipeline.

RawFrame is what the camera collaborator hands over; TensorBuffer is the
fixed-shape input the inference engine accepts. Both hold numpy data and
are therefore plain dataclasses rather than Pydantic models.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

import numpy as np

from plantdoc.core.taxonomy import MODEL_CHANNELS, MODEL_INPUT_SIZE


class PixelFormat(str, Enum):
    """Pixel layouts a RawFrame may carry."""

    RGB = "rgb"
    BGR = "bgr"
    RGBA = "rgba"
    BGRA = "bgra"
    GRAY = "gray"

    @property
    def channels(self) -> int:
        return {"rgb": 3, "bgr": 3, "rgba": 4, "bgra": 4, "gray": 1}[self.value]


@dataclass
class RawFrame:
    """One camera frame. Not retained past a single preprocessing step."""

    width: int
    height: int
    pixels: Union[bytes, bytearray, memoryview, np.ndarray]
    pixel_format: str = PixelFormat.RGB.value

    @classmethod
    def from_array(cls, image: np.ndarray, pixel_format: str = "bgr") -> "RawFrame":
        """Wrap an HxW(xC) array, e.g. an OpenCV frame (BGR by default)."""
        height, width = image.shape[:2]
        return cls(width=width, height=height, pixels=image, pixel_format=pixel_format)


TENSOR_SHAPE = (MODEL_INPUT_SIZE, MODEL_INPUT_SIZE, MODEL_CHANNELS)


@dataclass(frozen=True)
class TensorBuffer:
    """128x128x3 uint8 RGB input tensor."""

    data: np.ndarray

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.data.shape)

    def is_valid(self) -> bool:
        return self.shape == TENSOR_SHAPE and self.data.dtype == np.uint8

    def batched(self) -> np.ndarray:
        """Add the leading batch dimension engines expect."""
        return np.expand_dims(self.data, axis=0)
