"""
Configuration loader for the object segmentation service.

Environment variables are centralized here so the pipeline modules stay
free of global state: `pipeline.options_from_settings` turns them into
`PipelineOptions` and `RenderStyle` values that are passed in explicitly.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings

from .rendering import parse_hex_color


class Settings(BaseSettings):
    # Core pipeline tunables
    kmeans_seed: int = Field(12345, env="KMEANS_SEED")
    kmeans_max_iterations: int = Field(15, env="KMEANS_MAX_ITERATIONS")
    luma_slack: int = Field(15, env="LUMA_SLACK")
    reconstruction_max_iterations: int = Field(64, env="RECONSTRUCTION_MAX_ITERATIONS")

    # Rendering
    fill_alpha: float = Field(0.45, env="FILL_ALPHA")
    tint_alpha: float = Field(0.65, env="TINT_ALPHA")
    accent_color: str = Field("#00B4FF", env="ACCENT_COLOR")
    outline_color: str = Field("#FF0000", env="OUTLINE_COLOR")
    mask_background_color: str = Field("#000000", env="MASK_BACKGROUND_COLOR")

    # Input validation (enforced outside the core)
    min_image_side: int = Field(50, env="MIN_IMAGE_SIDE")
    max_image_side: int = Field(4000, env="MAX_IMAGE_SIDE")
    min_region_size_min: int = Field(10, env="MIN_REGION_SIZE_MIN")
    min_region_size_max: int = Field(5000, env="MIN_REGION_SIZE_MAX")
    default_min_region_size: int = Field(50, env="DEFAULT_MIN_REGION_SIZE")
    max_upload_bytes: int = Field(10 * 1024 * 1024, env="MAX_UPLOAD_BYTES")

    # Storage: local disk or Cloudflare R2 / S3-compatible
    storage_backend: str = Field("local", env="STORAGE_BACKEND")
    upload_dir: Path = Field(Path("uploads"), env="UPLOAD_DIR")
    upload_url_prefix: str = Field("/uploads", env="UPLOAD_URL_PREFIX")
    r2_endpoint: Optional[str] = Field(None, env="R2_ENDPOINT")
    r2_access_key_id: Optional[str] = Field(None, env="R2_ACCESS_KEY_ID")
    r2_secret_access_key: Optional[str] = Field(None, env="R2_SECRET_ACCESS_KEY")
    r2_bucket_name: Optional[str] = Field(None, env="R2_BUCKET_NAME")
    r2_public_base_url: Optional[str] = Field(None, env="R2_PUBLIC_BASE_URL")

    # API
    alternative_method: str = Field("grabcut", env="ALTERNATIVE_METHOD")
    request_timeout_seconds: int = Field(30, env="REQUEST_TIMEOUT_SECONDS")
    log_level: str = Field("INFO", env="LOG_LEVEL")

    class Config:
        env_file = ".env"
        case_sensitive = False

    @validator("fill_alpha", "tint_alpha")
    def validate_alpha(cls, v: float) -> float:  # noqa: B902
        if not 0.0 <= v <= 1.0:
            raise ValueError("blend alphas must lie in [0, 1]")
        return v

    @validator("accent_color", "outline_color", "mask_background_color")
    def validate_color(cls, v: str) -> str:  # noqa: B902
        if parse_hex_color(v) is None:
            raise ValueError(f"'{v}' is not a #RRGGBB color")
        return v

    @validator("storage_backend")
    def validate_storage_backend(cls, v: str) -> str:  # noqa: B902
        if v not in {"local", "r2"}:
            raise ValueError("STORAGE_BACKEND must be one of local|r2")
        return v

    @validator("alternative_method")
    def validate_alternative_method(cls, v: str) -> str:  # noqa: B902
        if v not in {"grabcut", "watershed", "none"}:
            raise ValueError("ALTERNATIVE_METHOD must be one of grabcut|watershed|none")
        return v

    @validator("max_image_side")
    def validate_side_bounds(cls, v: int, values: dict) -> int:  # noqa: B902
        if v < values.get("min_image_side", 0):
            raise ValueError("MAX_IMAGE_SIDE must not be smaller than MIN_IMAGE_SIDE")
        return v

    @validator("min_region_size_max")
    def validate_region_bounds(cls, v: int, values: dict) -> int:  # noqa: B902
        if v < values.get("min_region_size_min", 0):
            raise ValueError("MIN_REGION_SIZE_MAX must not be smaller than MIN_REGION_SIZE_MIN")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings to avoid reparsing env on every call."""
    return Settings()

