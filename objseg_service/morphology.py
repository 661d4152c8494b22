"""
Binary morphology on boolean (h, w) masks.

The structuring element is the full 3x3 neighborhood and pixels outside the
image count as unset, so erosion always clears the image border ring.
"""

from __future__ import annotations

import logging

import cv2
import numpy as np

logger = logging.getLogger(__name__)

_KERNEL = np.ones((3, 3), np.uint8)
DEFAULT_RECONSTRUCTION_ITERATIONS = 64


def _u8(mask: np.ndarray) -> np.ndarray:
    return mask.astype(np.uint8)


def erode(mask: np.ndarray) -> np.ndarray:
    out = cv2.erode(_u8(mask), _KERNEL, iterations=1, borderType=cv2.BORDER_CONSTANT, borderValue=0)
    return out.astype(bool)


def dilate(mask: np.ndarray) -> np.ndarray:
    out = cv2.dilate(_u8(mask), _KERNEL, iterations=1, borderType=cv2.BORDER_CONSTANT, borderValue=0)
    return out.astype(bool)


def open_mask(mask: np.ndarray, rounds: int = 1) -> np.ndarray:
    """`rounds` times erode-then-dilate."""
    out = mask.copy()
    for _ in range(rounds):
        out = dilate(erode(out))
    return out


def close_mask(mask: np.ndarray, rounds: int = 1) -> np.ndarray:
    """`rounds` times dilate-then-erode."""
    out = mask.copy()
    for _ in range(rounds):
        out = erode(dilate(out))
    return out


def opening_by_reconstruction(
    mask: np.ndarray,
    erosion_rounds: int = 1,
    max_iterations: int = DEFAULT_RECONSTRUCTION_ITERATIONS,
) -> np.ndarray:
    """
    Erode `erosion_rounds` times, then grow the surviving seeds back inside
    `mask` until stable. Regions whose seed vanished are dropped whole; the
    rest keep their original outline.
    """
    seed = mask.copy()
    for _ in range(erosion_rounds):
        seed = erode(seed)

    for it in range(max_iterations):
        grown = dilate(seed) & mask
        if np.array_equal(grown, seed):
            logger.debug("reconstruction: stable after %d iteration(s)", it + 1)
            return grown
        seed = grown

    logger.debug("reconstruction: stopped at the %d iteration cap", max_iterations)
    return seed


def constrained_grow(mask: np.ndarray, allow: np.ndarray, rounds: int) -> np.ndarray:
    """Dilate `rounds` times, never leaving the `allow` region."""
    cur = mask.copy()
    for _ in range(rounds):
        cur = dilate(cur) & allow
    return cur


def fill_holes(mask: np.ndarray) -> np.ndarray:
    """
    Set every background pixel that is not 4-connected to the image border
    through other background pixels.
    """
    background = (~mask).astype(np.uint8)
    _, labels = cv2.connectedComponents(background, connectivity=4, ltype=cv2.CV_32S)

    border_labels = np.unique(
        np.concatenate([labels[0, :], labels[-1, :], labels[:, 0], labels[:, -1]])
    )
    outside = np.isin(labels, border_labels[border_labels != 0])
    return mask | (background.astype(bool) & ~outside)


def gradient_edges(mask: np.ndarray) -> np.ndarray:
    """Morphological gradient: the band `dilate(mask) AND NOT erode(mask)`."""
    return dilate(mask) & ~erode(mask)
