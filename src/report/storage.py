"""MinIO-backed storage for rendered report documents."""

import asyncio
import io
import logging
import re
import secrets
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

from minio import Minio

from common.interfaces.content_store import ContentStore

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPE = "text/html; charset=utf-8"
MAX_SIGNED_URL_SECONDS = 24 * 60 * 60

_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class UploadResult:
    """Where an uploaded document can be fetched from."""

    url: str
    object_name: str
    size: int


def safe_object_name(suggested_name: Optional[str]) -> str:
    """Reduce a suggested file name to a safe object basename."""
    base = (suggested_name or "").replace("\\", "/").rsplit("/", 1)[-1]
    base = _UNSAFE_NAME_RE.sub("-", base).strip("-.")
    if not base:
        base = f"visualization-{int(time.time() * 1000)}.html"
    return base


class MinioContentStore(ContentStore):
    """Upload documents to a MinIO bucket under a fixed object prefix.

    The bucket is created on first upload when missing. Blocking client calls
    run in a worker thread.
    """

    def __init__(
        self,
        client: Any = None,
        *,
        bucket: Optional[str] = None,
        prefix: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ):
        """Initialize with an optional client for testing; other values default to Settings."""
        from common.config.settings import get_settings

        settings = get_settings()
        self.client = client or Minio(
            settings.MINIO_ENDPOINT,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_SECURE,
        )
        self.bucket = bucket or settings.MINIO_BUCKET
        self.prefix = (prefix if prefix is not None else settings.MINIO_OBJECT_PREFIX).strip("/")
        self.public_base_url = (public_base_url or settings.MINIO_PUBLIC_BASE_URL).rstrip("/")
        self._bucket_ready = False

    def _ensure_bucket(self) -> None:
        if self._bucket_ready:
            return
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)
            logger.info(f"Created MinIO bucket: {self.bucket}")
        self._bucket_ready = True

    def object_name_for(self, suggested_name: Optional[str]) -> str:
        """Unique object key derived from a suggested file name.

        A random suffix goes before the extension, so uploads with the same
        suggested name never share a key.
        """
        stem, dot, ext = safe_object_name(suggested_name).rpartition(".")
        if not dot:
            stem, ext = ext, ""
        name = f"{stem}-{secrets.token_hex(8)}{dot}{ext}"
        return f"{self.prefix}/{name}" if self.prefix else name

    def public_url(self, object_name: str) -> str:
        """Public URL of an object."""
        return f"{self.public_base_url}/{self.bucket}/{object_name}"

    def _put(self, content: bytes, object_name: str) -> None:
        self._ensure_bucket()
        self.client.put_object(
            self.bucket,
            object_name,
            io.BytesIO(content),
            length=len(content),
            content_type=HTML_CONTENT_TYPE,
            metadata={
                "Cache-Control": "public, max-age=3600",
                "Content-Disposition": 'inline; filename="chart.html"',
            },
        )

    async def upload_document(self, content: bytes, suggested_name: str) -> UploadResult:
        """Upload ``content`` and return its public URL."""
        object_name = self.object_name_for(suggested_name)
        await asyncio.to_thread(self._put, content, object_name)
        url = self.public_url(object_name)
        logger.info(f"Uploaded report to MinIO: {object_name} ({len(content)} bytes)")
        return UploadResult(url=url, object_name=object_name, size=len(content))

    async def signed_url(self, object_name: str, expires_seconds: int = 3600) -> str:
        """Return a time-limited GET URL for a private object.

        Raises:
            ValueError: If ``expires_seconds`` is outside 1 second to 24 hours.
        """
        if expires_seconds <= 0 or expires_seconds > MAX_SIGNED_URL_SECONDS:
            raise ValueError("expires_seconds must be between 1 second and 24 hours")
        return await asyncio.to_thread(
            self.client.presigned_get_object,
            self.bucket,
            object_name,
            expires=timedelta(seconds=expires_seconds),
        )
