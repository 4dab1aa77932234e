"""Runtime configuration for clouddrive."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from clouddrive.auth import AuthInfo
from clouddrive.util.units import GIB

BLOB_BACKENDS: tuple[str, ...] = ("memory", "minio", "gdrive")

ENV_PREFIX: str = "CLOUDDRIVE_"


@dataclass(slots=True, frozen=True)
class DriveConfig:
    """
    Settings shared by the stores and the core components.

    Notes:
        - request_timeout_sec bounds every backend call; a hung request
          surfaces as StoreUnavailableError instead of blocking forever.
        - total_bytes is the per-owner storage allowance; 0 disables the
          upload quota check.
    """

    database_url: str = "sqlite:///clouddrive.db"
    blob_backend: str = "memory"

    minio_endpoint: Optional[str] = None
    minio_access_key: Optional[str] = None
    minio_secret_key: Optional[str] = None
    minio_bucket: str = "clouddrive"
    minio_secure: bool = True

    drive_folder_id: Optional[str] = None
    drive_auth: Optional[AuthInfo] = None
    drive_max_retries: int = 0

    request_timeout_sec: float = 30.0
    signed_url_ttl_sec: int = 3600
    max_tree_depth: int = 1000
    recent_limit: int = 10
    total_bytes: int = 15 * GIB
    root_label: str = "My Drive"
    upload_workers: int = 4

    def __post_init__(self) -> None:
        if self.blob_backend not in BLOB_BACKENDS:
            raise ValueError(
                f"blob_backend must be one of {BLOB_BACKENDS}, got {self.blob_backend!r}"
            )
        if self.blob_backend == "minio":
            for key in ("minio_endpoint", "minio_access_key", "minio_secret_key"):
                if not getattr(self, key):
                    raise ValueError(f"{key} is required for the minio blob backend")
        if self.blob_backend == "gdrive":
            if not self.drive_folder_id:
                raise ValueError("drive_folder_id is required for the gdrive blob backend")
            if self.drive_auth is None:
                raise ValueError("drive_auth is required for the gdrive blob backend")

        if self.request_timeout_sec <= 0:
            raise ValueError("request_timeout_sec must be positive")
        if self.signed_url_ttl_sec <= 0:
            raise ValueError("signed_url_ttl_sec must be positive")
        if self.max_tree_depth < 1:
            raise ValueError("max_tree_depth must be at least 1")
        if self.recent_limit < 0:
            raise ValueError("recent_limit must be non-negative")
        if self.total_bytes < 0:
            raise ValueError("total_bytes must be non-negative")
        if self.upload_workers < 1:
            raise ValueError("upload_workers must be at least 1")
        if self.drive_max_retries < 0:
            raise ValueError("drive_max_retries must be non-negative")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> DriveConfig:
        """
        Build config from CLOUDDRIVE_* environment variables.

        Recognized variables:
            - CLOUDDRIVE_DATABASE_URL, CLOUDDRIVE_BLOB_BACKEND
            - CLOUDDRIVE_MINIO_ENDPOINT, _ACCESS_KEY, _SECRET_KEY, _BUCKET, _SECURE
            - CLOUDDRIVE_DRIVE_FOLDER_ID, CLOUDDRIVE_DRIVE_MAX_RETRIES
            - CLOUDDRIVE_DRIVE_SERVICE_ACCOUNT_FILE, or
              CLOUDDRIVE_DRIVE_CLIENT_SECRETS + CLOUDDRIVE_DRIVE_TOKEN_FILE
            - CLOUDDRIVE_REQUEST_TIMEOUT_SEC, CLOUDDRIVE_SIGNED_URL_TTL_SEC,
              CLOUDDRIVE_MAX_TREE_DEPTH, CLOUDDRIVE_RECENT_LIMIT,
              CLOUDDRIVE_TOTAL_BYTES, CLOUDDRIVE_ROOT_LABEL,
              CLOUDDRIVE_UPLOAD_WORKERS
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name, "").strip()
            return value or None

        kwargs: dict[str, object] = {}
        for field_name, env_name in (
            ("database_url", "DATABASE_URL"),
            ("blob_backend", "BLOB_BACKEND"),
            ("minio_endpoint", "MINIO_ENDPOINT"),
            ("minio_access_key", "MINIO_ACCESS_KEY"),
            ("minio_secret_key", "MINIO_SECRET_KEY"),
            ("minio_bucket", "MINIO_BUCKET"),
            ("drive_folder_id", "DRIVE_FOLDER_ID"),
            ("root_label", "ROOT_LABEL"),
        ):
            value = get(env_name)
            if value is not None:
                kwargs[field_name] = value

        for field_name, env_name, convert in (
            ("request_timeout_sec", "REQUEST_TIMEOUT_SEC", float),
            ("signed_url_ttl_sec", "SIGNED_URL_TTL_SEC", int),
            ("max_tree_depth", "MAX_TREE_DEPTH", int),
            ("recent_limit", "RECENT_LIMIT", int),
            ("total_bytes", "TOTAL_BYTES", int),
            ("upload_workers", "UPLOAD_WORKERS", int),
            ("drive_max_retries", "DRIVE_MAX_RETRIES", int),
        ):
            value = get(env_name)
            if value is not None:
                try:
                    kwargs[field_name] = convert(value)
                except ValueError as exc:
                    raise ValueError(f"{ENV_PREFIX}{env_name} is not a valid number") from exc

        secure = get("MINIO_SECURE")
        if secure is not None:
            kwargs["minio_secure"] = secure.lower() not in ("0", "false", "no", "off")

        service_account_file = get("DRIVE_SERVICE_ACCOUNT_FILE")
        client_secrets = get("DRIVE_CLIENT_SECRETS")
        token_file = get("DRIVE_TOKEN_FILE")
        if service_account_file:
            kwargs["drive_auth"] = AuthInfo.service_account(service_account_file)
        elif client_secrets and token_file:
            kwargs["drive_auth"] = AuthInfo.oauth(client_secrets, token_file)

        return cls(**kwargs)  # type: ignore[arg-type]
