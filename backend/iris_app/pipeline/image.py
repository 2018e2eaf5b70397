"""Downsampling and JPEG re-encoding of captured photos."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import EncodingError


logger = logging.getLogger("iris")

DEFAULT_SCALE = 0.5
DEFAULT_QUALITY = 0.5
CAPTURE_QUALITY = 0.8
JPEG_MIME = "image/jpeg"


def _jpeg_quality(fraction: float) -> int:
    # Pillow's useful JPEG range is 1..95.
    return max(1, min(95, round(fraction * 100)))


def _check_fraction(name: str, value: float) -> None:
    if not 0 < value <= 1:
        raise ValueError(f"{name} must be in (0, 1], got {value!r}")


@dataclass(frozen=True)
class CapturedImage:
    """Still frame handed over by the camera collaborator."""

    data: bytes = field(repr=False)
    width: int = 0
    height: int = 0

    @property
    def byte_size(self) -> int:
        return len(self.data)

    @classmethod
    def from_pil(cls, image: Image.Image, quality: float = CAPTURE_QUALITY) -> "CapturedImage":
        buffer = BytesIO()
        image.convert("RGB").save(buffer, format="JPEG", quality=_jpeg_quality(quality))
        return cls(data=buffer.getvalue(), width=image.width, height=image.height)


@dataclass(frozen=True)
class EncodedPayload:
    """Base64 JPEG ready to be embedded in a prompt."""

    data_b64: str = field(repr=False)
    byte_size: int
    width: int
    height: int

    @property
    def data_url(self) -> str:
        return f"data:{JPEG_MIME};base64,{self.data_b64}"


def preprocess(
    image: CapturedImage,
    scale: float = DEFAULT_SCALE,
    quality: float = DEFAULT_QUALITY,
) -> EncodedPayload:
    """Resize ``image`` by ``scale`` and re-encode it as JPEG at ``quality``.

    The result is always smaller than the capture; a payload that would not
    shrink is reported as an ``EncodingError`` rather than uploaded as is.
    """
    _check_fraction("scale", scale)
    _check_fraction("quality", quality)
    if not image.data:
        raise EncodingError("Captured image is empty")

    try:
        with Image.open(BytesIO(image.data)) as source:
            oriented = ImageOps.exif_transpose(source)
            original_size = oriented.size
            target_size = (
                max(1, round(oriented.width * scale)),
                max(1, round(oriented.height * scale)),
            )
            resized = oriented.convert("RGB").resize(target_size, Image.Resampling.LANCZOS)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise EncodingError(f"Unable to decode captured image: {exc}") from exc

    buffer = BytesIO()
    try:
        resized.save(buffer, format="JPEG", quality=_jpeg_quality(quality), optimize=True)
    except OSError as exc:
        raise EncodingError(f"Unable to encode resized image: {exc}") from exc
    encoded = buffer.getvalue()
    if not encoded:
        raise EncodingError("Resized image encoded to an empty buffer")

    logger.debug(
        "Captured image %d bytes at %dx%d; resized to %d bytes at %dx%d",
        image.byte_size,
        original_size[0],
        original_size[1],
        len(encoded),
        resized.width,
        resized.height,
    )
    if len(encoded) >= image.byte_size:
        raise EncodingError(
            f"Resized image ({len(encoded)} bytes) is not smaller than the capture ({image.byte_size} bytes)"
        )

    return EncodedPayload(
        data_b64=base64.b64encode(encoded).decode("ascii"),
        byte_size=len(encoded),
        width=resized.width,
        height=resized.height,
    )
