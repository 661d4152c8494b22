"""Output rendering: mask, outline overlay and recolored composite, plus PNG encoding."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .errors import EncodingFailure

RGB = Tuple[int, int, int]


@dataclass(frozen=True)
class RenderStyle:
    accent_color: RGB = (0, 180, 255)
    outline_color: RGB = (255, 0, 0)
    background_color: RGB = (0, 0, 0)
    fill_alpha: float = 0.45  # overlay
    tint_alpha: float = 0.65  # recolored


def parse_hex_color(value: Optional[str]) -> Optional[RGB]:
    if not value:
        return None
    raw = value.strip()
    if raw.startswith("#"):
        raw = raw[1:]
    if len(raw) != 6:
        return None
    try:
        r = int(raw[0:2], 16)
        g = int(raw[2:4], 16)
        b = int(raw[4:6], 16)
        return (r, g, b)
    except ValueError:
        return None


def color_from_hex(value: str) -> RGB:
    color = parse_hex_color(value)
    if color is None:
        raise ValueError(f"'{value}' is not a #RRGGBB color")
    return color


def _rgb(image: np.ndarray) -> np.ndarray:
    return np.ascontiguousarray(image[..., :3], dtype=np.uint8)


def blend(pixels: np.ndarray, tint: RGB, alpha: float, truncate: bool = False) -> np.ndarray:
    """
    clamp(round(alpha * tint + (1 - alpha) * orig)) per channel, halves rounded up.

    With `truncate` the fractional part is dropped instead and the keep weight
    is taken at its decimal value (0.7 rather than 1 - 0.3).
    """
    tint_arr = np.asarray(tint, dtype=np.float64)
    if truncate:
        keep = round(1.0 - alpha, 12)
        mixed = pixels.astype(np.float64) * keep + tint_arr * alpha
        return np.clip(np.floor(mixed), 0, 255).astype(np.uint8)
    mixed = alpha * tint_arr + (1.0 - alpha) * pixels.astype(np.float64)
    return np.clip(np.floor(mixed + 0.5), 0, 255).astype(np.uint8)


def render_mask(mask: np.ndarray, style: RenderStyle = RenderStyle()) -> np.ndarray:
    h, w = mask.shape
    out = np.empty((h, w, 3), dtype=np.uint8)
    out[...] = style.background_color
    out[mask] = style.accent_color
    return out


def render_overlay(
    image: np.ndarray,
    mask: np.ndarray,
    edges: Optional[np.ndarray] = None,
    style: RenderStyle = RenderStyle(),
    fill_alpha: Optional[float] = None,
    truncate: bool = False,
) -> np.ndarray:
    """Blend object pixels toward the accent color, then paint the outline band on top."""
    alpha = style.fill_alpha if fill_alpha is None else fill_alpha
    out = _rgb(image).copy()
    out[mask] = blend(out[mask], style.accent_color, alpha, truncate=truncate)
    if edges is not None:
        out[edges] = style.outline_color
    return out


def render_recolored(
    image: np.ndarray,
    mask: np.ndarray,
    style: RenderStyle = RenderStyle(),
    tint_alpha: Optional[float] = None,
    truncate: bool = False,
) -> np.ndarray:
    alpha = style.tint_alpha if tint_alpha is None else tint_alpha
    out = _rgb(image).copy()
    out[mask] = blend(out[mask], style.accent_color, alpha, truncate=truncate)
    return out


def encode_png(pixels: np.ndarray) -> bytes:
    """Encode an (h, w, 3) uint8 raster as PNG bytes."""
    try:
        buf = BytesIO()
        Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(buf, format="PNG")
    except (OSError, ValueError, TypeError) as exc:
        raise EncodingFailure("Failed to encode image") from exc
    return buf.getvalue()
