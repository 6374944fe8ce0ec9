from __future__ import annotations

import os
from io import BytesIO

import pytest
from PIL import Image

from app.services import images
from app.services.images import MAX_ATTEMPTS, ImageCropError, compress_jpeg, crop_image


def _png(size=(64, 48), color=(200, 30, 30), mode="RGB") -> bytes:
    buf = BytesIO()
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()


def _noise(size=(256, 256)) -> Image.Image:
    # random pixels barely compress, so every quality step stays large
    return Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))


def test_small_image_is_encoded_once_at_starting_quality() -> None:
    result = crop_image(_png(), x=0, y=0, width=32, height=32)

    assert result.attempts == 1
    assert result.quality == pytest.approx(0.8)
    assert result.within_budget is True
    out = Image.open(BytesIO(result.data))
    assert out.format == "JPEG"
    assert out.size == (32, 32)


def test_oversized_output_returns_last_attempt_after_bounded_loop() -> None:
    result = compress_jpeg(_noise(), max_bytes=1024)

    assert result.attempts <= MAX_ATTEMPTS
    assert result.within_budget is False
    assert result.quality == pytest.approx(0.5)
    assert result.size_bytes > 1024


def test_returns_first_encoding_within_budget() -> None:
    noise = _noise()
    budget = len(images._encode_jpeg(noise, 0.7))

    result = compress_jpeg(noise, max_bytes=budget)

    assert result.attempts == 2
    assert result.quality == pytest.approx(0.7)
    assert result.within_budget is True
    assert result.size_bytes <= budget


def test_progress_goes_to_the_callback() -> None:
    seen: list[str] = []

    result = compress_jpeg(_noise(), max_bytes=1024, on_progress=seen.append)

    assert seen == result.messages
    assert len(seen) == result.attempts + 1
    assert "compressing" in seen[0]


def test_rotation_swaps_dimensions() -> None:
    result = crop_image(_png(size=(80, 40)), x=0, y=0, width=40, height=80, rotation=90)

    assert Image.open(BytesIO(result.data)).size == (40, 80)


def test_transparent_pixels_become_white() -> None:
    result = crop_image(_png(size=(16, 16), color=(0, 0, 0, 0), mode="RGBA"), x=0, y=0, width=16, height=16)

    pixel = Image.open(BytesIO(result.data)).convert("RGB").getpixel((8, 8))
    assert all(channel > 240 for channel in pixel)


def test_crop_outside_image_is_rejected() -> None:
    with pytest.raises(ImageCropError):
        crop_image(_png(size=(64, 48)), x=40, y=0, width=32, height=32)


def test_garbage_input_is_rejected() -> None:
    with pytest.raises(ImageCropError):
        crop_image(b"definitely not an image", x=0, y=0, width=1, height=1)
