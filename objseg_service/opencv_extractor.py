"""
Alternative object extractors backed by OpenCV.

These produce the same `SegmentationResult` shape as the k-means pipeline so
the API can show both side by side. They report a single region covering
every object pixel and no threshold.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

import cv2
import numpy as np

from .components import Region
from .errors import AlternativeExtractorFailure
from .pipeline import SegmentationResult
from .rendering import RenderStyle, encode_png, render_mask, render_overlay, render_recolored

logger = logging.getLogger(__name__)

OVERLAY_ALPHA = 0.3
RECOLOR_ALPHA = 0.6


def _to_bgr(image: np.ndarray) -> np.ndarray:
    return cv2.cvtColor(np.ascontiguousarray(image[..., :3], dtype=np.uint8), cv2.COLOR_RGB2BGR)


def grabcut_mask(image: np.ndarray, iterations: int = 5) -> np.ndarray:
    """GrabCut initialised with a rectangle inset by a tenth of the short side."""
    bgr = _to_bgr(image)
    h, w = bgr.shape[:2]
    border = min(w, h) // 10
    rect = (border, border, w - 2 * border, h - 2 * border)

    mask = np.zeros((h, w), np.uint8)
    bgd_model = np.zeros((1, 65), np.float64)
    fgd_model = np.zeros((1, 65), np.float64)
    cv2.grabCut(bgr, mask, rect, bgd_model, fgd_model, iterations, cv2.GC_INIT_WITH_RECT)
    return (mask == cv2.GC_FGD) | (mask == cv2.GC_PR_FGD)


def watershed_mask(image: np.ndarray) -> np.ndarray:
    """Marker-based watershed seeded from an inverse Otsu binarisation."""
    bgr = _to_bgr(image)
    gray = cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY)
    _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)

    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))
    binary = cv2.morphologyEx(binary, cv2.MORPH_OPEN, kernel, iterations=2)

    dist = cv2.distanceTransform(binary, cv2.DIST_L2, 5)
    _, sure_fg = cv2.threshold(dist, 0.5 * float(dist.max()), 255, cv2.THRESH_BINARY)
    sure_fg = sure_fg.astype(np.uint8)
    sure_bg = cv2.dilate(binary, kernel, iterations=3)
    unknown = cv2.subtract(sure_bg, sure_fg)

    _, markers = cv2.connectedComponents(sure_fg)
    markers = markers + 1
    markers[unknown == 255] = 0
    markers = cv2.watershed(bgr, markers.astype(np.int32))
    return (markers != -1) & (markers != 1)


def _result_from_mask(image: np.ndarray, mask: np.ndarray, style: RenderStyle) -> SegmentationResult:
    h, w = mask.shape
    total = int(np.count_nonzero(mask))
    percent = 100.0 * total / (w * h)
    return SegmentationResult(
        width=w,
        height=h,
        threshold=0,
        mask_png=encode_png(render_mask(mask, style)),
        outline_png=encode_png(
            render_overlay(image, mask, None, style, fill_alpha=OVERLAY_ALPHA, truncate=True)
        ),
        recolored_png=encode_png(
            render_recolored(image, mask, style, tint_alpha=RECOLOR_ALPHA, truncate=True)
        ),
        regions=[Region(id=1, area_px=total, area_percent=percent)],
    )


def _run(name: str, extract: Callable[[np.ndarray], np.ndarray], image: np.ndarray,
         style: Optional[RenderStyle]) -> SegmentationResult:
    style = style or RenderStyle()
    h, w = image.shape[:2]
    logger.info("Starting %s segmentation for image %dx%d", name, w, h)
    try:
        mask = extract(image)
    except cv2.error as exc:
        logger.error("%s segmentation failed: %s", name, exc)
        raise AlternativeExtractorFailure(f"{name} segmentation failed: {exc}") from exc
    result = _result_from_mask(image, mask, style)
    logger.info(
        "%s segmentation completed: %d pixels (%.2f%%)",
        name,
        result.areas_px[0],
        result.areas_percent[0],
    )
    return result


def segment_with_grabcut(image: np.ndarray, style: Optional[RenderStyle] = None,
                         iterations: int = 5) -> SegmentationResult:
    return _run("GrabCut", lambda img: grabcut_mask(img, iterations), image, style)


def segment_with_watershed(image: np.ndarray, style: Optional[RenderStyle] = None) -> SegmentationResult:
    return _run("Watershed", watershed_mask, image, style)


ALTERNATIVE_EXTRACTORS: Dict[str, Callable[..., SegmentationResult]] = {
    "grabcut": segment_with_grabcut,
    "watershed": segment_with_watershed,
}
