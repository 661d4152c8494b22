"""Global Otsu threshold and the initial foreground / allowed-region masks."""

from __future__ import annotations

from typing import Tuple

import numpy as np

DEFAULT_LUMA_SLACK = 15


def otsu_threshold(gray: np.ndarray) -> int:
    """
    Otsu's threshold over a 256-bin histogram of 8-bit values.

    Class B holds values <= t. Candidates with an empty class are skipped;
    the first t reaching the maximal between-class variance wins.
    """
    hist = np.bincount(np.asarray(gray, dtype=np.uint8).ravel(), minlength=256).astype(np.float64)
    total = hist.sum()
    levels = np.arange(256, dtype=np.float64)

    w_b = np.cumsum(hist)
    w_f = total - w_b
    sum_b = np.cumsum(levels * hist)
    sum_all = sum_b[-1]

    valid = (w_b > 0) & (w_f > 0)
    if not np.any(valid):
        return 0

    with np.errstate(divide="ignore", invalid="ignore"):
        mean_b = sum_b / w_b
        mean_f = (sum_all - sum_b) / w_f
        between = w_b * w_f * (mean_b - mean_f) ** 2
    between = np.where(valid, between, -1.0)
    return int(np.argmax(between))


def build_masks(
    clusters: np.ndarray,
    background_cluster: int,
    gray: np.ndarray,
    threshold: int,
    slack: int = DEFAULT_LUMA_SLACK,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Return (allow, foreground).

    `allow` marks every pixel outside the background cluster and bounds later
    growth; `foreground` additionally requires luma <= threshold + slack.
    """
    allow = clusters != background_cluster
    foreground = allow & (gray.astype(np.int32) <= threshold + slack)
    return allow, foreground
