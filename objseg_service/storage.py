"""
Storage for uploaded originals and rendered results.

`LocalStorage` writes under a directory that the API serves statically;
`R2Storage` uploads to Cloudflare R2 / any S3-compatible bucket. Both return
a `StoredFile` whose `url` the presentation layer can link to directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from pathlib import Path
import re
from typing import Optional, Union
import uuid
from urllib.parse import urljoin

import boto3
from botocore.client import Config as BotoConfig

from . import config
from .errors import StorageError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


@dataclass(frozen=True)
class StoredFile:
    location: str  # filesystem path or bucket key
    filename: str
    url: str


def _timestamp() -> str:
    now = datetime.now()
    return now.strftime("%Y%m%d_%H%M%S_") + f"{now.microsecond // 1000:03d}"


def safe_upload_name(original_filename: Optional[str]) -> str:
    """Timestamp-prefixed file name restricted to [A-Za-z0-9._-]."""
    base = Path(original_filename or "upload").name or "upload"
    return f"{_timestamp()}_{_UNSAFE_CHARS.sub('_', base)}"


def result_name() -> str:
    return f"{_timestamp()}_{uuid.uuid4().hex[:8]}_result.png"


def _check_image_content_type(content_type: Optional[str]) -> None:
    if not content_type or not content_type.startswith("image/"):
        raise StorageError(f"Only image uploads are allowed (received: {content_type})")


class LocalStorage:
    def __init__(self, root: Union[str, Path], url_prefix: str = "/uploads"):
        self.root = Path(root).resolve()
        self.url_prefix = url_prefix.rstrip("/")
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create upload directory: {self.root}") from exc
        logger.info("Using upload directory: %s", self.root)

    def _write(self, filename: str, data: bytes) -> StoredFile:
        target = self.root / filename
        try:
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to store {filename}") from exc
        return StoredFile(location=str(target), filename=filename, url=f"{self.url_prefix}/{filename}")

    def store_upload(self, data: bytes, original_filename: Optional[str], content_type: Optional[str]) -> StoredFile:
        if not data:
            raise StorageError("Empty upload")
        _check_image_content_type(content_type)
        return self._write(safe_upload_name(original_filename), data)

    def store_result_image(self, png_bytes: bytes) -> StoredFile:
        return self._write(result_name(), png_bytes)


class R2Storage:
    def __init__(self, settings: config.Settings, prefix: str = "segmentation"):
        required = [
            settings.r2_endpoint,
            settings.r2_access_key_id,
            settings.r2_secret_access_key,
            settings.r2_bucket_name,
        ]
        if any(v is None for v in required):
            raise StorageError("R2 configuration is incomplete; check env vars.")
        self.settings = settings
        self.prefix = prefix.strip("/")
        session = boto3.session.Session()
        self.client = session.client(
            service_name="s3",
            aws_access_key_id=settings.r2_access_key_id,
            aws_secret_access_key=settings.r2_secret_access_key,
            endpoint_url=settings.r2_endpoint,
            config=BotoConfig(signature_version="s3v4"),
        )

    def _public_url(self, key: str) -> str:
        if self.settings.r2_public_base_url:
            return urljoin(self.settings.r2_public_base_url.rstrip("/") + "/", key)
        # virtual-hosted URLs may not be reachable; fall back to a presigned GET
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.settings.r2_bucket_name, "Key": key},
            ExpiresIn=3600,
        )

    def _put(self, filename: str, data: bytes, content_type: str) -> StoredFile:
        key = f"{self.prefix}/{filename}"
        try:
            self.client.put_object(
                Bucket=self.settings.r2_bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
            url = self._public_url(key)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Failed to upload %s to R2: %s", key, exc)
            raise StorageError("Upload to storage failed") from exc
        return StoredFile(location=key, filename=filename, url=url)

    def store_upload(self, data: bytes, original_filename: Optional[str], content_type: Optional[str]) -> StoredFile:
        if not data:
            raise StorageError("Empty upload")
        _check_image_content_type(content_type)
        return self._put(safe_upload_name(original_filename), data, content_type)

    def store_result_image(self, png_bytes: bytes) -> StoredFile:
        return self._put(result_name(), png_bytes, "image/png")


Storage = Union[LocalStorage, R2Storage]


def get_storage(settings: Optional[config.Settings] = None) -> Storage:
    settings = settings or config.get_settings()
    if settings.storage_backend == "r2":
        return R2Storage(settings)
    return LocalStorage(settings.upload_dir, settings.upload_url_prefix)
