"""Item Store and Blob Store implementations."""

from __future__ import annotations

from .base import UNSET, BlobStore, ItemQuery, ItemStore
from .drive_blob import GoogleDriveBlobStore
from .memory import InMemoryBlobStore, InMemoryItemStore
from .minio_blob import MinioBlobStore
from .sql import SqlItemStore

__all__ = [
    "UNSET",
    "ItemQuery",
    "ItemStore",
    "BlobStore",
    "InMemoryItemStore",
    "InMemoryBlobStore",
    "SqlItemStore",
    "MinioBlobStore",
    "GoogleDriveBlobStore",
]
