"""
FastAPI layer exposing the object segmentation pipeline.

Endpoints:
 - GET /health
 - POST /segment        (multipart upload)
 - POST /segment-url    (JSON with an image URL)
"""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, HttpUrl
import requests

from . import config
from .errors import (
    AlternativeExtractorFailure,
    InputTooSmall,
    InvalidInput,
    NoObjectsFound,
    SegmentationError,
    StorageError,
)
from .opencv_extractor import ALTERNATIVE_EXTRACTORS
from .pipeline import SegmentationResult, options_from_settings, segment
from .preprocessing import load_image_from_bytes
from .storage import Storage, get_storage

settings = config.get_settings()
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ["image/jpeg", "image/jpg", "image/png", "image/gif", "image/bmp", "image/webp"]

app = FastAPI(title="Object Segmentation Service", version="0.1.0")

if settings.storage_backend == "local":
    app.mount(
        settings.upload_url_prefix,
        StaticFiles(directory=str(settings.upload_dir), check_dir=False),
        name="uploads",
    )


class RegionOut(BaseModel):
    id: int
    areaPx: int
    areaPercent: float


class MethodResult(BaseModel):
    overlayUrl: str
    maskUrl: str
    recoloredUrl: str
    segments: int
    threshold: int
    areaPercent: float
    regions: List[RegionOut]


class SegmentResponse(BaseModel):
    originalUrl: str
    kmeans: MethodResult
    alternativeMethod: str
    alternative: Optional[MethodResult] = None
    alternativeError: Optional[str] = None
    width: int
    height: int
    totalPixels: int


class SegmentUrlRequest(BaseModel):
    imageUrl: HttpUrl
    minRegionSize: Optional[int] = None


def storage_dependency() -> Storage:
    return get_storage(settings)


def suggestion_for(exc: Exception) -> str:
    if isinstance(exc, NoObjectsFound):
        return "Try a smaller minimum region size or an image with higher-contrast objects."
    if isinstance(exc, InputTooSmall):
        return f"Upload a larger image (at least {settings.min_image_side}x{settings.min_image_side} pixels)."
    if isinstance(exc, AlternativeExtractorFailure):
        return "The OpenCV extractor is unavailable for this image; the k-means result is still shown."
    if isinstance(exc, InvalidInput) and "Invalid image data" in str(exc):
        return "Try a different image in PNG or JPEG format."
    return "Try different parameters or another image."


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=400, detail={"error": str(exc), "suggestion": suggestion_for(exc)})


def _store_method_result(result: SegmentationResult, storage: Storage) -> MethodResult:
    overlay = storage.store_result_image(result.outline_png)
    mask = storage.store_result_image(result.mask_png)
    recolored = storage.store_result_image(result.recolored_png)
    return MethodResult(
        overlayUrl=overlay.url,
        maskUrl=mask.url,
        recoloredUrl=recolored.url,
        segments=result.segment_count,
        threshold=result.threshold,
        areaPercent=round(result.total_area_percent, 2),
        regions=[RegionOut(id=r.id, areaPx=r.area_px, areaPercent=r.area_percent) for r in result.regions],
    )


def _process(
    image_bytes: bytes,
    filename: Optional[str],
    content_type: Optional[str],
    min_region_size: Optional[int],
    storage: Storage,
) -> SegmentResponse:
    if content_type is None or content_type.lower() not in SUPPORTED_FORMATS:
        raise _bad_request(
            InvalidInput(
                f"Unsupported file format: {content_type}. Supported formats: {', '.join(SUPPORTED_FORMATS)}"
            )
        )
    if len(image_bytes) > settings.max_upload_bytes:
        raise _bad_request(InvalidInput(f"File too large. Maximum size: {settings.max_upload_bytes} bytes"))
    if min_region_size is None:
        min_region_size = settings.default_min_region_size

    logger.info(
        "Processing file: %s (%dKB), minRegionSize: %d",
        filename,
        len(image_bytes) // 1024,
        min_region_size,
    )

    options, style = options_from_settings(settings)
    method = settings.alternative_method
    try:
        image = load_image_from_bytes(image_bytes, min_region_size, settings)
        kmeans_result = segment(image, min_region_size, options=options, style=style)
    except (InvalidInput, SegmentationError) as exc:
        logger.warning("Segmentation failed for %s: %s", filename, exc)
        raise _bad_request(exc) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Segmentation crashed for %s: %s", filename, exc)
        raise HTTPException(status_code=500, detail="Segmentation failed") from exc

    alternative_result = None
    alternative_error = None
    if method != "none":
        try:
            alternative_result = ALTERNATIVE_EXTRACTORS[method](image, style=style)
        except AlternativeExtractorFailure as exc:
            logger.warning("Alternative method %s failed for %s: %s", method, filename, exc)
            alternative_error = suggestion_for(exc)

    try:
        original = storage.store_upload(image_bytes, filename, content_type)
        kmeans_out = _store_method_result(kmeans_result, storage)
        alternative_out = (
            _store_method_result(alternative_result, storage) if alternative_result is not None else None
        )
    except StorageError as exc:
        logger.exception("Failed to store segmentation outputs: %s", exc)
        raise HTTPException(status_code=500, detail="Storing results failed") from exc

    logger.info("Segmentation completed for %s (alternative: %s)", filename, "failed" if alternative_error else method)
    return SegmentResponse(
        originalUrl=original.url,
        kmeans=kmeans_out,
        alternativeMethod=method,
        alternative=alternative_out,
        alternativeError=alternative_error,
        width=kmeans_result.width,
        height=kmeans_result.height,
        totalPixels=kmeans_result.width * kmeans_result.height,
    )


def _download_image(url: str) -> requests.Response:
    resp = requests.get(url, timeout=(5, settings.request_timeout_seconds))
    resp.raise_for_status()
    return resp


@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/segment", response_model=SegmentResponse)
def segment_upload(
    file: UploadFile = File(...),
    minRegionSize: Optional[int] = Form(None),
    storage: Storage = Depends(storage_dependency),
):
    # one byte past the limit is enough to know the upload is too large
    image_bytes = file.file.read(settings.max_upload_bytes + 1)
    if not image_bytes:
        raise _bad_request(InvalidInput("Please choose a file to upload"))
    return _process(image_bytes, file.filename, file.content_type, minRegionSize, storage)


@app.post("/segment-url", response_model=SegmentResponse)
def segment_url(body: SegmentUrlRequest, storage: Storage = Depends(storage_dependency)):
    url = str(body.imageUrl)
    try:
        resp = _download_image(url)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Failed to download image: %s", exc)
        raise HTTPException(status_code=400, detail="Could not download image") from exc

    content_type = (resp.headers.get("Content-Type") or "").split(";")[0].strip() or None
    filename = url.rstrip("/").rsplit("/", 1)[-1] or "download"
    return _process(resp.content, filename, content_type, body.minRegionSize, storage)
