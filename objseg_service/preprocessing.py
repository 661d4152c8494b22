"""
Image decoding and caller-side validation.

The core pipeline trusts its inputs; the bounds on image dimensions and on
the minimum region size are enforced here before it is invoked.
"""

from __future__ import annotations

from io import BytesIO
from typing import TYPE_CHECKING

import numpy as np
from PIL import Image

from .errors import InvalidInput

if TYPE_CHECKING:
    from .config import Settings


def decode_image(image_bytes: bytes) -> np.ndarray:
    """Decode any Pillow-readable image into an (h, w, 3) uint8 RGB array."""
    if not image_bytes:
        raise InvalidInput("No image provided")
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
        rgb = image.convert("RGB")
    except Exception as exc:  # noqa: BLE001
        raise InvalidInput("Invalid image data") from exc
    return np.asarray(rgb, dtype=np.uint8).copy()


def validate_dimensions(image: np.ndarray, min_side: int, max_side: int) -> None:
    h, w = image.shape[:2]
    if w < min_side or h < min_side:
        raise InvalidInput(f"Image too small. Minimum size: {min_side}x{min_side} pixels")
    if w > max_side or h > max_side:
        raise InvalidInput(f"Image too large. Maximum size: {max_side}x{max_side} pixels")


def validate_min_region_size(value: int, low: int, high: int) -> None:
    if not low <= value <= high:
        raise InvalidInput(f"minRegionSize must be between {low} and {high} pixels")


def load_image_from_bytes(image_bytes: bytes, min_region_size: int, settings: "Settings") -> np.ndarray:
    """Decode `image_bytes` and check it, and `min_region_size`, against the configured bounds."""
    validate_min_region_size(min_region_size, settings.min_region_size_min, settings.min_region_size_max)
    image = decode_image(image_bytes)
    validate_dimensions(image, settings.min_image_side, settings.max_image_side)
    return image
