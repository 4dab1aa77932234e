"""Public error exports for clouddrive."""

from __future__ import annotations

from .exceptions import (
    AuthError,
    CloudDriveError,
    CorruptTreeError,
    DuplicateNameError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidParentError,
    InvalidStateError,
    NotFoundError,
    NotInTrashError,
    QuotaExceededError,
    StoreUnavailableError,
    map_http_error,
)

__all__ = [
    "CloudDriveError",
    "DuplicateNameError",
    "InvalidParentError",
    "NotFoundError",
    "NotInTrashError",
    "CorruptTreeError",
    "StoreUnavailableError",
    "QuotaExceededError",
    "InvalidArgumentError",
    "InvalidStateError",
    "AuthError",
    "HttpErrorInfo",
    "map_http_error",
]
