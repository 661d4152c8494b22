"""Per-pixel color features: CIE L*a*b* (D65) and Rec. 709 luma."""

from __future__ import annotations

from typing import Tuple

import numpy as np

# sRGB (D65) linear RGB -> XYZ
_RGB_TO_XYZ = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ],
    dtype=np.float64,
)
_WHITE_D65 = np.array([0.95047, 1.00000, 1.08883], dtype=np.float64)

_DELTA = 6.0 / 29.0
_LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)


def _as_rgb(image: np.ndarray) -> np.ndarray:
    """Drop an alpha channel if present and return an (h, w, 3) view."""
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"expected an (h, w, 3|4) pixel buffer, got shape {image.shape}")
    return image[..., :3]


def srgb_to_linear(channel01: np.ndarray) -> np.ndarray:
    """Inverse sRGB gamma on values in [0, 1]."""
    return np.where(
        channel01 <= 0.04045,
        channel01 / 12.92,
        np.power((channel01 + 0.055) / 1.055, 2.4),
    )


def _lab_f(t: np.ndarray) -> np.ndarray:
    return np.where(t > _DELTA ** 3, np.cbrt(t), t / (3.0 * _DELTA ** 2) + 4.0 / 29.0)


def rgb_to_lab(image: np.ndarray) -> np.ndarray:
    """
    Convert 8-bit sRGB pixels to L*a*b* relative to the D65 white point.

    Returns a float32 array of shape (h, w, 3) holding (L, a, b).
    """
    rgb = _as_rgb(image).astype(np.float64) / 255.0
    linear = srgb_to_linear(rgb)
    xyz = linear @ _RGB_TO_XYZ.T
    f = _lab_f(xyz / _WHITE_D65)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]

    lab = np.empty(f.shape, dtype=np.float32)
    lab[..., 0] = 116.0 * fy - 16.0
    lab[..., 1] = 500.0 * (fx - fy)
    lab[..., 2] = 200.0 * (fy - fz)
    return lab


def luma(image: np.ndarray) -> np.ndarray:
    """Integer luma in [0, 255], rounding halves up."""
    rgb = _as_rgb(image).astype(np.float64)
    y = rgb @ _LUMA_WEIGHTS
    return np.clip(np.floor(y + 0.5), 0, 255).astype(np.uint8)


def extract_features(image: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Return (lab, luma) for an RGB(A) pixel buffer."""
    return rgb_to_lab(image), luma(image)
