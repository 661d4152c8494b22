"""
Unsupervised color clustering and background identification.

`kmeans` groups Lab features into k clusters; `border_background_cluster`
picks the cluster that dominates the image border.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_SEED = 12345
LARGE_IMAGE_PIXELS = 200 * 200


def cluster_count(width: int, height: int) -> int:
    """Use a fourth cluster only for images of at least 200x200 pixels."""
    return 4 if width * height >= LARGE_IMAGE_PIXELS else 3


def kmeans(
    features: np.ndarray,
    k: int,
    max_iterations: int = 15,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Lloyd's k-means over (..., 3) Lab features.

    Centroids start at k pixel samples drawn with replacement from `rng`.
    Each pixel goes to the centroid at the smallest squared distance, the
    lowest cluster index winning ties. A cluster that loses all its pixels
    keeps its previous centroid. Iteration stops after `max_iterations` or
    at the first iteration (after the first) that changes no assignment.

    Returns integer cluster ids with the shape of `features[..., 0]`.
    """
    if rng is None:
        rng = np.random.default_rng(DEFAULT_SEED)

    shape = features.shape[:-1]
    samples = features.reshape(-1, features.shape[-1]).astype(np.float32, copy=False)
    n = samples.shape[0]
    if n == 0:
        raise ValueError("cannot cluster an empty image")

    seeds = rng.integers(0, n, size=k)
    centroids = samples[seeds].astype(np.float64)
    assign = np.full(n, -1, dtype=np.int32)

    iterations = 0
    for it in range(max_iterations):
        iterations = it + 1
        best = np.zeros(n, dtype=np.int32)
        best_d = np.sum((samples - centroids[0].astype(np.float32)) ** 2, axis=1)
        for c in range(1, k):
            d = np.sum((samples - centroids[c].astype(np.float32)) ** 2, axis=1)
            closer = d < best_d
            best[closer] = c
            best_d = np.where(closer, d, best_d)

        changed = bool(np.any(best != assign))
        assign = best
        if not changed and it > 0:
            break

        counts = np.bincount(assign, minlength=k)
        for ch in range(samples.shape[1]):
            sums = np.bincount(assign, weights=samples[:, ch], minlength=k)
            nonempty = counts > 0
            centroids[nonempty, ch] = sums[nonempty] / counts[nonempty]

    logger.debug("kmeans: k=%d converged after %d iteration(s)", k, iterations)
    return assign.reshape(shape)


def border_background_cluster(clusters: np.ndarray, k: int) -> int:
    """
    Majority vote of border pixels.

    Votes come from the full top and bottom rows plus the left and right
    columns without their first and last rows. Ties go to the lowest id.
    """
    h, w = clusters.shape
    votes = np.zeros(k, dtype=np.int64)
    votes += np.bincount(clusters[0, :], minlength=k)
    votes += np.bincount(clusters[h - 1, :], minlength=k)
    if h > 2:
        votes += np.bincount(clusters[1 : h - 1, 0], minlength=k)
        votes += np.bincount(clusters[1 : h - 1, w - 1], minlength=k)
    return int(np.argmax(votes))
