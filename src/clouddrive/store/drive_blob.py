"""Blob Store backed by a Google Drive folder."""

from __future__ import annotations

import io
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, TypeVar

from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

from clouddrive.auth import AuthInfo, OAuthClient
from clouddrive.errors import (
    HttpErrorInfo,
    NotFoundError,
    StoreUnavailableError,
    map_http_error,
)
from clouddrive.util.mime import DEFAULT_MIME

from .base import BlobStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

BLOB_FIELDS: str = "id,name,size,webContentLink"
PATH_PROPERTY: str = "clouddrive_path"


@dataclass(frozen=True)
class _RetryPolicy:
    max_retries: int = 0
    initial_delay_sec: float = 1.0


class GoogleDriveBlobStore(BlobStore):
    """
    Keep uploaded bytes as files inside one Drive folder.

    Notes:
        - The blob ref returned by upload() is the Drive file id; the logical
          path is kept in the file's appProperties.
        - Drive cannot expire download links, so create_signed_url returns the
          file's webContentLink and ttl_seconds is not enforced.
        - Retries are off unless max_retries is set; only rate limits, 5xx and
          network errors are retried.
    """

    DEFAULT_SCOPES: tuple[str, ...] = ("https://www.googleapis.com/auth/drive.file",)

    def __init__(
        self,
        auth_info: AuthInfo,
        folder_id: str,
        *,
        scopes: Optional[Sequence[str]] = None,
        timeout: float = 30.0,
        max_retries: int = 0,
        supports_all_drives: bool = True,
    ) -> None:
        use_scopes = list(scopes) if scopes is not None else list(self.DEFAULT_SCOPES)
        client = OAuthClient(auth_info)
        service = client.build_drive_service(use_scopes, ensure_valid=True, timeout=timeout)
        self._init(service, folder_id, max_retries, supports_all_drives)

    @classmethod
    def from_service(
        cls,
        service: Any,
        folder_id: str,
        *,
        max_retries: int = 0,
        supports_all_drives: bool = True,
    ) -> GoogleDriveBlobStore:
        """Create store from a pre-built Drive service (useful for tests)."""
        obj = cls.__new__(cls)
        obj._init(service, folder_id, max_retries, supports_all_drives)
        return obj

    def _init(
        self,
        service: Any,
        folder_id: str,
        max_retries: int,
        supports_all_drives: bool,
    ) -> None:
        if not folder_id:
            raise ValueError("folder_id must be a non-empty string")
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        self._service = service
        self._folder_id = folder_id
        self._retry_policy = _RetryPolicy(max_retries=max_retries)
        self._supports_all_drives = supports_all_drives

    # ----------------------------
    # BlobStore API
    # ----------------------------
    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        media = MediaIoBaseUpload(
            io.BytesIO(data),
            mimetype=content_type or DEFAULT_MIME,
            resumable=False,
        )
        body = {
            "name": path.rsplit("/", 1)[-1],
            "parents": [self._folder_id],
            "appProperties": {PATH_PROPERTY: path},
        }
        req = self._service.files().create(
            body=body,
            media_body=media,
            fields=BLOB_FIELDS,
            **self._common_kwargs(),
        )
        data_out = self._execute(req.execute)
        file_id = data_out.get("id")
        if not isinstance(file_id, str) or not file_id:
            raise StoreUnavailableError(
                "Drive did not return a file id for the uploaded blob",
                details={"path": path},
            )
        logger.debug("Uploaded blob %s as Drive file %s", path, file_id)
        return file_id

    def download(self, path: str) -> bytes:
        req = self._service.files().get_media(fileId=path, **self._common_kwargs())
        buffer = io.BytesIO()
        downloader = MediaIoBaseDownload(buffer, req)
        done = False
        while not done:
            _, done = self._execute(downloader.next_chunk)
        return buffer.getvalue()

    def remove(self, path: str) -> None:
        req = self._service.files().delete(fileId=path, **self._common_kwargs())
        try:
            self._execute(req.execute)
        except NotFoundError:
            logger.debug("Blob already gone: %s", path)

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        req = self._service.files().get(
            fileId=path,
            fields=BLOB_FIELDS,
            **self._common_kwargs(),
        )
        data = self._execute(req.execute)
        link = data.get("webContentLink")
        if not isinstance(link, str) or not link:
            raise StoreUnavailableError(
                "Drive returned no download link",
                details={"file_id": path},
            )
        logger.debug("Drive link for %s does not expire (requested ttl %ds)", path, ttl_seconds)
        return link

    # ----------------------------
    # Internals
    # ----------------------------
    def _common_kwargs(self) -> dict[str, Any]:
        if not self._supports_all_drives:
            return {}
        return {"supportsAllDrives": True}

    def _execute(self, func: Callable[[], T]) -> T:
        delay = self._retry_policy.initial_delay_sec
        for attempt in range(self._retry_policy.max_retries + 1):
            try:
                return func()
            except Exception as exc:
                mapped = self._map_exception(exc)
                if self._should_retry(mapped) and attempt < self._retry_policy.max_retries:
                    logger.warning("Drive request failed (%s); retrying in %.1fs", mapped, delay)
                    time.sleep(delay)
                    delay *= 2
                    continue
                raise mapped from exc

        raise StoreUnavailableError("Unexpected retry loop termination")

    def _should_retry(self, exc: Exception) -> bool:
        if not isinstance(exc, StoreUnavailableError):
            return False
        status_code = exc.details.get("status_code")
        if status_code is None:
            return True
        return status_code == 429 or 500 <= status_code <= 599

    def _map_exception(self, exc: Exception) -> Exception:
        if isinstance(exc, HttpError):
            return map_http_error(_http_error_to_info(exc), cause=exc)

        if isinstance(exc, (OSError, TimeoutError)):
            return StoreUnavailableError("Network error", cause=exc)

        return StoreUnavailableError("Drive API error", details={"status_code": 0}, cause=exc)


def _http_error_to_info(exc: Any) -> HttpErrorInfo:
    status_code = getattr(getattr(exc, "resp", None), "status", None)
    reason = getattr(getattr(exc, "resp", None), "reason", None)

    message = None
    details: dict[str, Any] = {}

    content = getattr(exc, "content", None)
    if isinstance(content, (bytes, bytearray)):
        try:
            payload = json.loads(content.decode("utf-8"))
        except ValueError:
            payload = {}
        err = payload.get("error", {}) if isinstance(payload, dict) else {}
        if isinstance(err, dict):
            message = err.get("message") or None
            errors = err.get("errors") or []
            if errors and isinstance(errors, list) and isinstance(errors[0], dict):
                details["domain"] = errors[0].get("domain")
                if isinstance(errors[0].get("reason"), str):
                    reason = errors[0]["reason"]

    if not isinstance(status_code, int):
        status_code = 0

    return HttpErrorInfo(
        status_code=status_code,
        reason=reason if isinstance(reason, str) else None,
        message=message,
        details=details or None,
    )
