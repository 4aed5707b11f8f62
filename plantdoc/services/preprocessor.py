"""
Frame preprocessing for Plant Doctor.

Converts camera frames (or uploaded photos) into the 128x128x3 uint8 RGB
tensor the apple leaf model expects. All functions are pure.
"""

import logging

import cv2
import numpy as np

from plantdoc.core.errors import PreprocessError
from plantdoc.core.taxonomy import MODEL_INPUT_SIZE
from plantdoc.models.frames import PixelFormat, RawFrame, TensorBuffer

logger = logging.getLogger(__name__)

# Conversion to the engine's RGB channel order
_TO_RGB = {
    PixelFormat.RGB: None,
    PixelFormat.BGR: cv2.COLOR_BGR2RGB,
    PixelFormat.RGBA: cv2.COLOR_RGBA2RGB,
    PixelFormat.BGRA: cv2.COLOR_BGRA2RGB,
    PixelFormat.GRAY: cv2.COLOR_GRAY2RGB,
}


def _parse_format(tag: str) -> PixelFormat:
    if isinstance(tag, PixelFormat):
        return tag
    try:
        return PixelFormat(str(tag).lower())
    except ValueError as e:
        raise PreprocessError(f"Unsupported pixel format: {tag!r}") from e


def _as_image(frame: RawFrame, pixel_format: PixelFormat) -> np.ndarray:
    """Reshape the frame's pixel buffer to HxWxC uint8."""
    channels = pixel_format.channels
    expected = frame.width * frame.height * channels

    if isinstance(frame.pixels, np.ndarray):
        buf = frame.pixels
    else:
        buf = np.frombuffer(frame.pixels, dtype=np.uint8)

    if buf.size != expected:
        raise PreprocessError(
            f"Pixel buffer has {buf.size} values, expected {expected} "
            f"for {frame.width}x{frame.height} {pixel_format.value}"
        )

    # Normalize value range before any conversion
    if buf.dtype != np.uint8:
        if np.issubdtype(buf.dtype, np.floating) and buf.size and float(buf.max()) <= 1.0:
            buf = buf * 255.0
        buf = np.clip(buf, 0, 255).astype(np.uint8)

    return buf.reshape(frame.height, frame.width, channels)


def preprocess(frame: RawFrame, size: int = MODEL_INPUT_SIZE) -> TensorBuffer:
    """
    Convert a RawFrame into the model input tensor.

    Args:
        frame: Camera frame or decoded photo
        size: Square output size (default: 128)

    Returns:
        TensorBuffer of shape (size, size, 3), dtype uint8, RGB order

    Raises:
        PreprocessError: On zero dimensions, unsupported pixel format or a
            pixel buffer whose size does not match the dimensions
    """
    if frame.width <= 0 or frame.height <= 0:
        raise PreprocessError(
            f"Frame has zero dimensions: {frame.width}x{frame.height}"
        )

    pixel_format = _parse_format(frame.pixel_format)
    image = _as_image(frame, pixel_format)

    conversion = _TO_RGB[pixel_format]
    if conversion is not None:
        image = cv2.cvtColor(image, conversion)

    if image.shape[:2] != (size, size):
        image = cv2.resize(image, (size, size), interpolation=cv2.INTER_AREA)

    return TensorBuffer(data=np.ascontiguousarray(image, dtype=np.uint8))


def decode_image(data: bytes) -> RawFrame:
    """
    Decode an encoded photo (JPEG, PNG, ...) into a BGR RawFrame.

    Raises:
        PreprocessError: If the data is empty or cannot be decoded
    """
    if not data:
        raise PreprocessError("Empty image data")

    image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise PreprocessError("Image data could not be decoded")

    logger.debug(f"Decoded photo {image.shape[1]}x{image.shape[0]}")
    return RawFrame.from_array(image, pixel_format=PixelFormat.BGR.value)
