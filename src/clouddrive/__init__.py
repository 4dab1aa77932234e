"""clouddrive public API."""

from __future__ import annotations

from clouddrive.accounting import StorageAccountant
from clouddrive.auth import AuthInfo, OAuthClient
from clouddrive.cache import ViewCache
from clouddrive.config import DriveConfig
from clouddrive.coordinator import MutationCoordinator
from clouddrive.errors import (
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
from clouddrive.manager import DriveManager, FileUpload
from clouddrive.models import (
    AccessLevel,
    Action,
    CategoryUsage,
    DownloadLink,
    Item,
    ItemKind,
    Listing,
    OperationResult,
    PathEntry,
    ShareGrant,
    StorageUsage,
    View,
)
from clouddrive.store import (
    BlobStore,
    GoogleDriveBlobStore,
    InMemoryBlobStore,
    InMemoryItemStore,
    ItemQuery,
    ItemStore,
    MinioBlobStore,
    SqlItemStore,
)
from clouddrive.tree import TreeResolver
from clouddrive.views import ViewFilter

__all__ = [
    # High-level
    "DriveManager",
    "FileUpload",
    "DriveConfig",
    # Core
    "TreeResolver",
    "ViewFilter",
    "MutationCoordinator",
    "StorageAccountant",
    "ViewCache",
    # Stores
    "ItemStore",
    "BlobStore",
    "ItemQuery",
    "InMemoryItemStore",
    "InMemoryBlobStore",
    "SqlItemStore",
    "MinioBlobStore",
    "GoogleDriveBlobStore",
    # Auth
    "AuthInfo",
    "OAuthClient",
    # Models
    "Item",
    "ItemKind",
    "PathEntry",
    "Listing",
    "ShareGrant",
    "AccessLevel",
    "View",
    "CategoryUsage",
    "StorageUsage",
    "DownloadLink",
    "Action",
    "OperationResult",
    # Errors
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
