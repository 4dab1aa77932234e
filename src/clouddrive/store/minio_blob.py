"""Blob Store backed by MinIO / S3-compatible object storage."""

from __future__ import annotations

import io
import logging
from datetime import timedelta
from typing import Any, Optional

import urllib3
from minio import Minio
from minio.error import S3Error

from clouddrive.errors import NotFoundError, StoreUnavailableError
from clouddrive.util.mime import DEFAULT_MIME

from .base import BlobStore

logger = logging.getLogger(__name__)

_MISSING_CODES: frozenset[str] = frozenset({"NoSuchKey", "NoSuchObject", "NoSuchBucket"})


class MinioBlobStore(BlobStore):
    """
    Store file bytes as objects in one bucket.

    The bucket is created lazily on the first upload.
    """

    def __init__(self, client: Any, bucket: str) -> None:
        if not bucket:
            raise ValueError("bucket must be a non-empty string")
        self._client = client
        self._bucket = bucket
        self._bucket_ready = False

    @classmethod
    def from_settings(
        cls,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        *,
        secure: bool = True,
        timeout: float = 30.0,
    ) -> MinioBlobStore:
        http_client = urllib3.PoolManager(
            timeout=urllib3.Timeout(connect=timeout, read=timeout),
            retries=False,
        )
        client = Minio(
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            secure=secure,
            http_client=http_client,
        )
        return cls(client, bucket)

    @property
    def bucket(self) -> str:
        return self._bucket

    def ensure_bucket(self) -> None:
        if self._bucket_ready:
            return
        try:
            if not self._client.bucket_exists(bucket_name=self._bucket):
                self._client.make_bucket(bucket_name=self._bucket)
                logger.info("Bucket '%s' created", self._bucket)
        except Exception as exc:
            raise self._map_exception(exc, "ensure_bucket", self._bucket) from exc
        self._bucket_ready = True

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        self.ensure_bucket()
        try:
            self._client.put_object(
                bucket_name=self._bucket,
                object_name=path,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type or DEFAULT_MIME,
            )
        except Exception as exc:
            raise self._map_exception(exc, "upload", path) from exc
        logger.debug("Uploaded %d bytes to %s/%s", len(data), self._bucket, path)
        return path

    def download(self, path: str) -> bytes:
        response = None
        try:
            response = self._client.get_object(bucket_name=self._bucket, object_name=path)
            return response.read()
        except Exception as exc:
            raise self._map_exception(exc, "download", path) from exc
        finally:
            if response is not None:
                response.close()
                response.release_conn()

    def remove(self, path: str) -> None:
        try:
            self._client.remove_object(bucket_name=self._bucket, object_name=path)
        except Exception as exc:
            mapped = self._map_exception(exc, "remove", path)
            if isinstance(mapped, NotFoundError):
                return
            raise mapped from exc

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        try:
            return self._client.presigned_get_object(
                bucket_name=self._bucket,
                object_name=path,
                expires=timedelta(seconds=ttl_seconds),
            )
        except Exception as exc:
            raise self._map_exception(exc, "create_signed_url", path) from exc

    def _map_exception(self, exc: Exception, operation: str, path: str) -> Exception:
        details = {"operation": operation, "bucket": self._bucket, "path": path}
        if isinstance(exc, S3Error):
            details["code"] = exc.code
            if exc.code in _MISSING_CODES:
                return NotFoundError(f"Blob not found: {path}", details=details, cause=exc)
            return StoreUnavailableError(
                f"Object storage {operation} failed: {exc.code}",
                details=details,
                cause=exc,
            )
        return StoreUnavailableError(
            f"Object storage {operation} failed",
            details=details,
            cause=exc,
        )
