"""4-connected component labeling with area filtering."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Region:
    id: int
    area_px: int
    area_percent: float


def min_keep_area(width: int, height: int, min_region_size: int) -> int:
    """Smallest region area worth reporting: never below 100 px or 0.1% of the image."""
    return max(min_region_size, max(100, (width * height) // 1000))


def label_components(mask: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Label 4-connected set pixels.

    Ids start at 1 and follow raster-scan discovery order: component i is the
    i-th one whose first pixel is met scanning rows top to bottom. Returns the
    (h, w) int32 label map (0 = unset) and the area of each id, indexed from 0.
    """
    count, labels, stats, _ = cv2.connectedComponentsWithStats(
        mask.astype(np.uint8), connectivity=4, ltype=cv2.CV_32S
    )
    if count <= 1:
        return np.zeros(mask.shape, dtype=np.int32), np.zeros(0, dtype=np.int64)

    present, first_seen = np.unique(labels.ravel(), return_index=True)
    first_index = np.zeros(count, dtype=np.int64)
    first_index[present] = first_seen
    # discovery order of the non-zero cv2 labels
    order = np.argsort(first_index[1:], kind="stable") + 1

    remap = np.zeros(count, dtype=np.int32)
    remap[order] = np.arange(1, count, dtype=np.int32)
    ordered = remap[labels]
    areas = stats[order, cv2.CC_STAT_AREA].astype(np.int64)
    return ordered, areas


def keep_regions(mask: np.ndarray, min_keep: int) -> Tuple[np.ndarray, List[Region]]:
    """
    Label the mask and keep the components with area >= `min_keep`.

    Rejected components still consume their id, so kept ids may have gaps.
    Returns the object mask of the kept components and their regions in
    discovery order.
    """
    labels, areas = label_components(mask)
    total = mask.size
    regions: List[Region] = []
    for idx, area in enumerate(areas):
        if area >= min_keep:
            region = Region(id=idx + 1, area_px=int(area), area_percent=100.0 * int(area) / total)
            regions.append(region)
            logger.debug(
                "components: kept region %d with area %d px (%.2f%%)",
                region.id,
                region.area_px,
                region.area_percent,
            )

    kept_ids = np.array([r.id for r in regions], dtype=np.int32)
    return np.isin(labels, kept_ids), regions


def remove_small_regions(mask: np.ndarray, min_size: int) -> np.ndarray:
    """Drop 4-connected components smaller than `min_size` pixels."""
    labels, areas = label_components(mask)
    kept_ids = np.flatnonzero(areas >= min_size) + 1
    return np.isin(labels, kept_ids)
