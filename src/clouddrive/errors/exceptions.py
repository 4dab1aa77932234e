"""Exception hierarchy and transport error mapping for clouddrive."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class CloudDriveError(Exception):
    """
    Base exception for clouddrive.

    Attributes:
        details: Optional structured information (e.g., item id, status code).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class DuplicateNameError(CloudDriveError):
    """Raised when a non-trashed sibling folder already uses the name."""


class InvalidParentError(CloudDriveError):
    """Raised when a parent folder is missing, trashed, or would form a cycle."""


class NotFoundError(CloudDriveError):
    """Raised when an item, blob or share grant does not exist for the owner."""


class NotInTrashError(CloudDriveError):
    """Raised when an operation requires a trashed item (delete/restore)."""


class CorruptTreeError(CloudDriveError):
    """Raised when a parent-pointer walk detects a cycle or exceeds max depth."""


class StoreUnavailableError(CloudDriveError):
    """Raised when the item or blob backend fails (network, timeout, 5xx)."""


class QuotaExceededError(CloudDriveError):
    """Raised when an upload would exceed the owner's storage allowance."""


class InvalidArgumentError(CloudDriveError):
    """Raised when call arguments are invalid (empty name, bad view, etc.)."""


class InvalidStateError(CloudDriveError):
    """Raised when the library is used in an invalid state."""


class AuthError(CloudDriveError):
    """Raised when backend credentials are missing, rejected or cannot refresh."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to clouddrive exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


# Drive error reasons that mean the backing account is out of space.
_QUOTA_REASONS: tuple[str, ...] = ("quota", "storagequotaexceeded", "usagelimits")

_STATUS_ERRORS: dict[int, type[CloudDriveError]] = {
    400: InvalidArgumentError,
    401: AuthError,
    403: AuthError,
    404: NotFoundError,
}


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> CloudDriveError:
    """
    Translate a blob backend HTTP failure into a clouddrive error.

    400 is InvalidArgumentError, 401 is AuthError, 403 is AuthError unless the
    reason names a quota (QuotaExceededError), 404 is NotFoundError. Anything
    else, rate limits and 5xx included, is StoreUnavailableError.
    """
    details: dict[str, Any] = {"status_code": info.status_code, "reason": info.reason}
    details.update(info.details or {})
    message = info.message or f"HTTP error {info.status_code}"

    reason = (info.reason or "").lower()
    if info.status_code == 403 and any(key in reason for key in _QUOTA_REASONS):
        error_cls: type[CloudDriveError] = QuotaExceededError
    else:
        error_cls = _STATUS_ERRORS.get(info.status_code, StoreUnavailableError)
    return error_cls(message, details=details, cause=cause)
