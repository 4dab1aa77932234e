"""Public model exports for clouddrive."""

from __future__ import annotations

from .item import Item, ItemKind, Listing, PathEntry, split_by_kind
from .results import Action, OperationResult, OperationStatus
from .share import AccessLevel, ShareGrant
from .usage import CategoryUsage, DownloadLink, StorageUsage
from .views import View

__all__ = [
    "Item",
    "ItemKind",
    "Listing",
    "PathEntry",
    "split_by_kind",
    "AccessLevel",
    "ShareGrant",
    "View",
    "CategoryUsage",
    "StorageUsage",
    "DownloadLink",
    "Action",
    "OperationStatus",
    "OperationResult",
]
