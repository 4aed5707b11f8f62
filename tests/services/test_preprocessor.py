"""
Unit tests for frame preprocessing.
"""

import numpy as np
import pytest

from plantdoc.core.errors import PreprocessError
from plantdoc.models.frames import PixelFormat, RawFrame
from plantdoc.services.preprocessor import decode_image, preprocess


def test_bgr_frame_becomes_rgb_model_tensor():
    image = np.zeros((48, 64, 3), dtype=np.uint8)
    image[:, :, 0] = 255  # blue in BGR

    tensor = preprocess(RawFrame.from_array(image, pixel_format="bgr"))

    assert tensor.shape == (128, 128, 3)
    assert tensor.data.dtype == np.uint8
    assert tensor.is_valid()
    assert tensor.data[0, 0].tolist() == [0, 0, 255]


def test_rgb_bytes_frame():
    pixels = bytes([10, 20, 30]) * (32 * 16)
    frame = RawFrame(width=32, height=16, pixels=pixels, pixel_format="rgb")

    tensor = preprocess(frame)

    assert tensor.shape == (128, 128, 3)
    assert tensor.data[64, 64].tolist() == [10, 20, 30]


def test_pixel_format_enum_member_is_accepted():
    image = np.zeros((10, 10, 3), dtype=np.uint8)
    image[:, :, 2] = 200  # red in BGR

    tensor = preprocess(RawFrame(10, 10, image, pixel_format=PixelFormat.BGR))

    assert tensor.is_valid()
    assert tensor.data[0, 0].tolist() == [200, 0, 0]


def test_rgba_frame_drops_alpha():
    image = np.full((20, 20, 4), 200, dtype=np.uint8)
    tensor = preprocess(RawFrame.from_array(image, pixel_format="rgba"))
    assert tensor.shape == (128, 128, 3)


def test_gray_frame_is_expanded_to_three_channels():
    image = np.full((30, 30), 77, dtype=np.uint8)
    tensor = preprocess(RawFrame.from_array(image, pixel_format="gray"))
    assert tensor.shape == (128, 128, 3)
    assert tensor.data[5, 5].tolist() == [77, 77, 77]


def test_float_frame_is_scaled_to_uint8():
    image = np.full((16, 16, 3), 0.5, dtype=np.float32)
    tensor = preprocess(RawFrame.from_array(image, pixel_format="rgb"))
    assert tensor.data.dtype == np.uint8
    assert 126 <= int(tensor.data[0, 0, 0]) <= 128


def test_already_sized_frame_is_not_resampled():
    image = np.random.default_rng(0).integers(0, 256, (128, 128, 3), dtype=np.uint8)
    tensor = preprocess(RawFrame.from_array(image, pixel_format="rgb"))
    assert np.array_equal(tensor.data, image)


def test_zero_dimensions_raise():
    with pytest.raises(PreprocessError):
        preprocess(RawFrame(width=0, height=10, pixels=b""))


def test_buffer_size_mismatch_raises():
    frame = RawFrame(width=10, height=10, pixels=b"\x00" * 50, pixel_format="rgb")
    with pytest.raises(PreprocessError) as exc_info:
        preprocess(frame)
    assert "expected 300" in str(exc_info.value)


def test_unsupported_pixel_format_raises():
    frame = RawFrame(width=2, height=2, pixels=b"\x00" * 12, pixel_format="yuv420")
    with pytest.raises(PreprocessError):
        preprocess(frame)


def test_decode_png(leaf_png):
    frame = decode_image(leaf_png)
    assert (frame.width, frame.height) == (40, 40)
    assert frame.pixel_format == "bgr"


def test_decode_empty_data_raises():
    with pytest.raises(PreprocessError):
        decode_image(b"")


def test_decode_garbage_raises():
    with pytest.raises(PreprocessError):
        decode_image(b"definitely not an image")
