"""Item Store and Blob Store interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from clouddrive.models import Item, ItemKind, ShareGrant


class _Unset:
    """Marker for "no filter" (distinct from filtering on None)."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

FILTER_FIELDS: tuple[str, ...] = (
    "parent_id",
    "starred",
    "trashed",
    "shared",
    "name",
    "trash_root_id",
)

ORDER_FIELDS: tuple[str, ...] = ("created_at", "updated_at", "name", "size_bytes")

UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "parent_id",
        "updated_at",
        "starred",
        "trashed",
        "shared",
        "trashed_at",
        "trash_root_id",
    }
)


@dataclass(frozen=True)
class ItemQuery:
    """
    Row filter for ItemStore.query.

    Every filter field defaults to UNSET (no filter). Passing None filters on
    NULL, e.g. parent_id=None selects root-level items.
    """

    owner_id: str
    parent_id: Any = UNSET
    starred: Any = UNSET
    trashed: Any = UNSET
    shared: Any = UNSET
    name: Any = UNSET
    trash_root_id: Any = UNSET

    name_ilike: Optional[str] = None
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None

    def __post_init__(self) -> None:
        if self.order_by is not None and self.order_by not in ORDER_FIELDS:
            raise ValueError(f"Unsupported order_by column: {self.order_by}")
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be non-negative")

    def equality_filters(self) -> dict[str, Any]:
        """Return only the filters that were set."""
        return {
            name: getattr(self, name)
            for name in FILTER_FIELDS
            if getattr(self, name) is not UNSET
        }

    def matches(self, item: Item) -> bool:
        """Evaluate the filter against an in-memory record."""
        if item.owner_id != self.owner_id:
            return False
        for name, expected in self.equality_filters().items():
            if getattr(item, name) != expected:
                return False
        if self.name_ilike is not None:
            if self.name_ilike.lower() not in item.name.lower():
                return False
        return True


class ItemStore(ABC):
    """
    Persistent table of File and Folder records plus share grants.

    Every item operation is scoped to an owner; rows of another owner behave
    as if they did not exist.
    """

    @abstractmethod
    def insert(self, item: Item) -> Item:
        """Insert a new record and return it as stored."""

    @abstractmethod
    def get(self, kind: ItemKind, item_id: str, owner_id: str) -> Optional[Item]:
        """Return the record or None."""

    @abstractmethod
    def update(self, kind: ItemKind, item_id: str, owner_id: str, **fields: Any) -> Item:
        """
        Update columns of one record and return the updated record.

        Raises:
            NotFoundError: if no such record exists for the owner.
            ValueError: if a field is not updatable.
        """

    @abstractmethod
    def delete(self, kind: ItemKind, item_id: str, owner_id: str) -> None:
        """Delete one record. Missing records are ignored."""

    @abstractmethod
    def query(self, kind: ItemKind, query: ItemQuery) -> list[Item]:
        """Return records of one table matching the query."""

    @abstractmethod
    def insert_share(self, grant: ShareGrant) -> ShareGrant:
        """Insert a share grant."""

    @abstractmethod
    def get_share(self, grant_id: str) -> Optional[ShareGrant]:
        """Return the grant or None."""

    @abstractmethod
    def list_shares(self, file_id: str) -> list[ShareGrant]:
        """Return grants for a file in creation order."""

    @abstractmethod
    def delete_share(self, grant_id: str) -> None:
        """Delete one grant. Missing grants are ignored."""

    @abstractmethod
    def delete_shares_for_file(self, file_id: str) -> int:
        """Delete every grant for a file and return how many were removed."""


class BlobStore(ABC):
    """Path-addressable binary storage for uploaded file bytes."""

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        """Store bytes under path and return the blob ref to persist."""

    @abstractmethod
    def download(self, path: str) -> bytes:
        """Return stored bytes. Raises NotFoundError if absent."""

    @abstractmethod
    def remove(self, path: str) -> None:
        """Delete stored bytes. Missing blobs are not an error."""

    @abstractmethod
    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        """Return a time-limited download URL."""


def check_updatable(fields: dict[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields are not updatable: {sorted(unknown)}")
