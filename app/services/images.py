# app/services/images.py
from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
from typing import Callable, Optional

from PIL import Image, UnidentifiedImageError

ProgressCallback = Callable[[str], None]

START_QUALITY = 0.8
MIN_QUALITY = 0.5
QUALITY_STEP = 0.1
MAX_ATTEMPTS = 5
DEFAULT_MAX_BYTES = 2048 * 1024

_BACKGROUND = (255, 255, 255)


class ImageCropError(Exception):
    pass


@dataclass
class CompressionResult:
    data: bytes
    quality: float
    attempts: int
    within_budget: bool
    messages: list[str] = field(default_factory=list)

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def _open(source: bytes) -> Image.Image:
    try:
        image = Image.open(BytesIO(source))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageCropError("Unsupported or corrupt image") from e
    return image


def _flatten(image: Image.Image) -> Image.Image:
    """JPEG has no alpha: paint transparent areas white."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, _BACKGROUND)
        canvas.paste(rgba, mask=rgba.getchannel("A"))
        return canvas
    return image.convert("RGB")


def _encode_jpeg(image: Image.Image, quality: float) -> bytes:
    buf = BytesIO()
    image.save(buf, format="JPEG", quality=int(round(quality * 100)), optimize=True)
    return buf.getvalue()


def compress_jpeg(
    image: Image.Image,
    *,
    max_bytes: int = DEFAULT_MAX_BYTES,
    on_progress: Optional[ProgressCallback] = None,
) -> CompressionResult:
    """
    Encode at 0.8 and step quality down by 0.1 while the output is over
    `max_bytes`, stopping at 0.5 or after MAX_ATTEMPTS encodings. Returns the
    first encoding that fits, otherwise the last (lowest quality) one.
    """
    messages: list[str] = []

    def report(msg: str) -> None:
        messages.append(msg)
        if on_progress is not None:
            on_progress(msg)

    image = _flatten(image)
    quality = START_QUALITY
    attempts = 0

    while True:
        data = _encode_jpeg(image, quality)
        attempts += 1

        if len(data) <= max_bytes:
            report(f"Encoded at quality {quality:.1f}: {len(data) // 1024} KB")
            return CompressionResult(data, quality, attempts, True, messages)

        report(f"Image is {len(data) // 1024} KB at quality {quality:.1f}, compressing...")

        next_quality = round(quality - QUALITY_STEP, 1)
        if attempts >= MAX_ATTEMPTS or next_quality < MIN_QUALITY:
            report(f"Could not get under {max_bytes // 1024} KB, using quality {quality:.1f}")
            return CompressionResult(data, quality, attempts, False, messages)

        quality = next_quality


def crop_image(
    source: bytes,
    *,
    x: int,
    y: int,
    width: int,
    height: int,
    rotation: float = 0,
    max_bytes: int = DEFAULT_MAX_BYTES,
    on_progress: Optional[ProgressCallback] = None,
) -> CompressionResult:
    """
    Rotate clockwise by `rotation` degrees, cut the (x, y, width, height)
    box out of the rotated image and JPEG-encode it under `max_bytes`.
    """
    image = _open(source)

    if rotation % 360:
        # PIL rotates counter-clockwise
        image = _flatten(image).rotate(-rotation, expand=True, fillcolor=_BACKGROUND)

    if width <= 0 or height <= 0:
        raise ImageCropError("Crop area must have a positive size")
    if x < 0 or y < 0 or x + width > image.width or y + height > image.height:
        raise ImageCropError(
            f"Crop area {width}x{height}+{x}+{y} is outside the {image.width}x{image.height} image"
        )

    cropped = image.crop((x, y, x + width, y + height))
    if on_progress is not None:
        on_progress(f"Cropped to {width}x{height}px")

    return compress_jpeg(cropped, max_bytes=max_bytes, on_progress=on_progress)
