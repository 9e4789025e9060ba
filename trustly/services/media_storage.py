from __future__ import annotations

import logging
import mimetypes
import os
from typing import Callable, Optional
from urllib.parse import unquote, urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from trustly.config import settings

logger = logging.getLogger(__name__)


class MediaStorageConfigurationError(RuntimeError):
    pass


class MediaStorageError(RuntimeError):
    pass


def guess_content_type(filename: Optional[str], fallback: Optional[str] = None) -> Optional[str]:
    if fallback and fallback != "application/octet-stream":
        return fallback
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return fallback


def file_extension(filename: Optional[str], default: str = "bin") -> str:
    _, ext = os.path.splitext(filename or "")
    ext = ext.lstrip(".").lower()
    return ext or default


class MediaStorage:
    """
    Thin wrapper around S3-compatible storage for the public media buckets.

    Objects are publicly readable; URLs are derived from bucket + key rather than presigned.
    """

    def __init__(self) -> None:
        if not settings.MEDIA_STORAGE_ENDPOINT:
            raise MediaStorageConfigurationError("MEDIA_STORAGE_ENDPOINT is required")
        if not settings.MEDIA_STORAGE_ACCESS_KEY or not settings.MEDIA_STORAGE_SECRET_KEY:
            raise MediaStorageConfigurationError(
                "MEDIA_STORAGE_ACCESS_KEY and MEDIA_STORAGE_SECRET_KEY are required"
            )

        addressing_style = "path" if settings.MEDIA_STORAGE_FORCE_PATH_STYLE else "auto"
        self.public_base_url = (
            settings.MEDIA_STORAGE_PUBLIC_BASE_URL or settings.MEDIA_STORAGE_ENDPOINT
        ).rstrip("/")

        session = boto3.session.Session()
        self.client = session.client(
            "s3",
            endpoint_url=settings.MEDIA_STORAGE_ENDPOINT,
            aws_access_key_id=settings.MEDIA_STORAGE_ACCESS_KEY,
            aws_secret_access_key=settings.MEDIA_STORAGE_SECRET_KEY,
            region_name=settings.MEDIA_STORAGE_REGION or "us-east-1",
            use_ssl=bool(settings.MEDIA_STORAGE_USE_SSL),
            config=Config(
                s3={"addressing_style": addressing_style},
                signature_version="s3v4",
            ),
        )

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.public_base_url}/{bucket}/{key}"

    def key_from_public_url(self, bucket: str, url: str) -> Optional[str]:
        """
        Recover the object key from a public URL: everything after `/<bucket>/` in the path.
        """
        if not url:
            return None
        path = unquote(urlparse(url).path)
        marker = f"/{bucket}/"
        idx = path.find(marker)
        if idx == -1:
            return None
        key = path[idx + len(marker):]
        return key or None

    def upload_bytes(
        self,
        *,
        bucket: str,
        key: str,
        data: bytes,
        content_type: Optional[str],
        cache_control: Optional[str] = None,
    ) -> str:
        kwargs = {
            "Bucket": bucket,
            "Key": key,
            "Body": data,
            "CacheControl": cache_control or settings.MEDIA_STORAGE_CACHE_CONTROL,
        }
        if content_type:
            kwargs["ContentType"] = content_type
        try:
            self.client.put_object(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise MediaStorageError(str(exc)) from exc
        return self.public_url(bucket, key)

    def delete_object(self, *, bucket: str, key: str) -> None:
        try:
            self.client.delete_object(Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise MediaStorageError(str(exc)) from exc


_storage: Optional[MediaStorage] = None


def get_media_storage() -> MediaStorage:
    global _storage
    if _storage is None:
        _storage = MediaStorage()
    return _storage


def get_media_storage_provider() -> Callable[[], MediaStorage]:
    """Deferred access for flows that only touch storage when files are present."""
    return get_media_storage
