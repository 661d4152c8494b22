"""
High-level object extraction pipeline.

`segment` is the core entry point: pixels in -> Lab features -> k-means ->
border background vote -> Otsu threshold -> morphology and component
filtering -> rendered PNGs and region statistics out. It is a pure function
of the image, the minimum region size and the explicit options; every
buffer is allocated per call.

`segment_image_bytes` wraps it for the HTTP API and the CLI: bytes in ->
decode and validate -> `segment` with options taken from settings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, List, Optional, Tuple

import numpy as np

from . import config
from .clustering import DEFAULT_SEED, border_background_cluster, cluster_count, kmeans
from .color import extract_features
from .components import Region, keep_regions, min_keep_area, remove_small_regions
from .errors import EncodingFailure, InputTooSmall, NoObjectsFound
from .morphology import (
    DEFAULT_RECONSTRUCTION_ITERATIONS,
    close_mask,
    constrained_grow,
    fill_holes,
    gradient_edges,
    open_mask,
    opening_by_reconstruction,
)
from .preprocessing import load_image_from_bytes
from .rendering import (
    RenderStyle,
    color_from_hex,
    encode_png,
    render_mask,
    render_overlay,
    render_recolored,
)
from .thresholding import DEFAULT_LUMA_SLACK, build_masks, otsu_threshold

logger = logging.getLogger(__name__)

Encoder = Callable[[np.ndarray], bytes]


@dataclass(frozen=True)
class PipelineOptions:
    kmeans_seed: int = DEFAULT_SEED
    kmeans_max_iterations: int = 15
    luma_slack: int = DEFAULT_LUMA_SLACK
    reconstruction_max_iterations: int = DEFAULT_RECONSTRUCTION_ITERATIONS


@dataclass
class SegmentationResult:
    width: int
    height: int
    threshold: int
    mask_png: bytes
    outline_png: bytes
    recolored_png: bytes
    regions: List[Region] = field(default_factory=list)

    @property
    def segment_count(self) -> int:
        return len(self.regions)

    @property
    def areas_px(self) -> List[int]:
        return [r.area_px for r in self.regions]

    @property
    def areas_percent(self) -> List[float]:
        return [r.area_percent for r in self.regions]

    @property
    def total_area_percent(self) -> float:
        return float(sum(self.areas_percent))


def _encode(encoder: Encoder, pixels: np.ndarray) -> bytes:
    try:
        return encoder(pixels)
    except EncodingFailure:
        raise
    except Exception as exc:  # noqa: BLE001
        raise EncodingFailure("Failed to encode image") from exc


def _cleanup(mask: np.ndarray, min_region_size: int) -> np.ndarray:
    """Drop specks that growth and hole filling may have reintroduced."""
    mask = open_mask(mask, 1)
    mask = remove_small_regions(mask, min_region_size)
    return close_mask(mask, 1)


def segment(
    image: np.ndarray,
    min_region_size: int,
    options: Optional[PipelineOptions] = None,
    style: Optional[RenderStyle] = None,
    rng: Optional[np.random.Generator] = None,
    encoder: Encoder = encode_png,
) -> SegmentationResult:
    """
    Extract foreground objects from an (h, w, 3|4) uint8 pixel buffer.

    Raises:
        InputTooSmall: width or height is 1 pixel or less.
        NoObjectsFound: no component reaches the minimum keep area.
        EncodingFailure: the encoder failed on a rendered image.
    """
    options = options or PipelineOptions()
    style = style or RenderStyle()
    image = np.asarray(image)

    if image.ndim < 2 or image.shape[0] <= 1 or image.shape[1] <= 1:
        raise InputTooSmall("Image too small to segment.")
    h, w = image.shape[:2]
    logger.info("Starting segmentation for image %dx%d, minRegionSize=%d", w, h, min_region_size)

    lab, gray = extract_features(image)

    k = cluster_count(w, h)
    if rng is None:
        rng = np.random.default_rng(options.kmeans_seed)
    clusters = kmeans(lab, k, max_iterations=options.kmeans_max_iterations, rng=rng)
    background = border_background_cluster(clusters, k)
    logger.debug("pipeline: k=%d background cluster=%d", k, background)

    threshold = otsu_threshold(gray)
    logger.debug("pipeline: Otsu threshold=%d", threshold)

    allow, foreground = build_masks(clusters, background, gray, threshold, slack=options.luma_slack)
    foreground = open_mask(foreground, 1)
    foreground = close_mask(foreground, 2)

    min_keep = min_keep_area(w, h, min_region_size)
    logger.debug("pipeline: minimum keep area=%d px", min_keep)
    objects, regions = keep_regions(foreground, min_keep)
    if not regions:
        logger.warning("No suitable objects found with minRegionSize=%d", min_region_size)
        raise NoObjectsFound("No suitable objects found. Try adjusting the minimum region size.")
    logger.info("Found %d valid regions", len(regions))

    objects = constrained_grow(objects, allow, 2)
    objects = opening_by_reconstruction(
        objects, erosion_rounds=1, max_iterations=options.reconstruction_max_iterations
    )
    objects = close_mask(objects, 1)
    objects = fill_holes(objects)
    objects = _cleanup(objects, min_region_size)

    edges = gradient_edges(objects)

    result = SegmentationResult(
        width=w,
        height=h,
        threshold=threshold,
        mask_png=_encode(encoder, render_mask(objects, style)),
        outline_png=_encode(encoder, render_overlay(image, objects, edges, style)),
        recolored_png=_encode(encoder, render_recolored(image, objects, style)),
        regions=regions,
    )
    logger.info("Segmentation completed successfully with %d segments", result.segment_count)
    return result


def options_from_settings(settings: Optional[config.Settings] = None) -> Tuple[PipelineOptions, RenderStyle]:
    """
    Translate settings into the explicit pipeline and render options.

    Defaults reproduce the historical constants, so an empty environment
    renders exactly what the bare `segment` call renders.
    """
    settings = settings or config.get_settings()
    options = PipelineOptions(
        kmeans_seed=settings.kmeans_seed,
        kmeans_max_iterations=settings.kmeans_max_iterations,
        luma_slack=settings.luma_slack,
        reconstruction_max_iterations=settings.reconstruction_max_iterations,
    )
    style = RenderStyle(
        accent_color=color_from_hex(settings.accent_color),
        outline_color=color_from_hex(settings.outline_color),
        background_color=color_from_hex(settings.mask_background_color),
        fill_alpha=settings.fill_alpha,
        tint_alpha=settings.tint_alpha,
    )
    return options, style


def segment_image_bytes(
    image_bytes: bytes,
    min_region_size: Optional[int] = None,
    settings: Optional[config.Settings] = None,
) -> SegmentationResult:
    """
    Full pipeline from raw encoded bytes to a `SegmentationResult`.

    Raises:
        InvalidInput: undecodable bytes or out-of-range dimensions / parameters.
        SegmentationError: any core failure.
    """
    settings = settings or config.get_settings()
    if min_region_size is None:
        min_region_size = settings.default_min_region_size
    image = load_image_from_bytes(image_bytes, min_region_size, settings)
    options, style = options_from_settings(settings)
    return segment(image, min_region_size, options=options, style=style)
