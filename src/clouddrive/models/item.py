"""Data model for drive items (files and folders)."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from clouddrive.util.ids import new_item_id
from clouddrive.util.time import now_utc


class ItemKind(str, Enum):
    """Tag distinguishing the two item tables."""

    FILE = "file"
    FOLDER = "folder"


@dataclass(slots=True)
class Item:
    """
    A File or Folder record.

    Notes:
        - parent_id None means the item lives at the owner's root.
        - trash_root_id is the id of the item the user trashed; descendants
          trashed by the same cascade share it. It is None while not trashed.
        - mime_type, size_bytes and blob_ref are file-only.
    """

    id: str
    name: str
    kind: ItemKind
    owner_id: str
    parent_id: Optional[str] = None

    created_at: datetime = field(default_factory=now_utc)
    updated_at: datetime = field(default_factory=now_utc)

    starred: bool = False
    trashed: bool = False
    shared: bool = False
    trashed_at: Optional[datetime] = None
    trash_root_id: Optional[str] = None

    mime_type: Optional[str] = None
    size_bytes: int = 0
    blob_ref: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, ItemKind):
            self.kind = ItemKind(self.kind)

        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Item.name must be a non-empty string")
        if not self.owner_id:
            raise ValueError("Item.owner_id must be set")
        if self.parent_id == self.id:
            raise ValueError("Item cannot be its own parent")

        if self.kind is ItemKind.FOLDER:
            if self.blob_ref is not None:
                raise ValueError("Folders cannot reference a blob")
            if self.size_bytes:
                raise ValueError("Folders have no intrinsic size")
        else:
            if not self.blob_ref:
                raise ValueError("Files must reference a blob")
            if self.size_bytes < 0:
                raise ValueError("Item.size_bytes must be non-negative")

    @classmethod
    def new_folder(cls, name: str, owner_id: str, parent_id: Optional[str] = None) -> Item:
        now = now_utc()
        return cls(
            id=new_item_id(),
            name=name,
            kind=ItemKind.FOLDER,
            owner_id=owner_id,
            parent_id=parent_id,
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def new_file(
        cls,
        name: str,
        owner_id: str,
        *,
        blob_ref: str,
        size_bytes: int,
        mime_type: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> Item:
        now = now_utc()
        return cls(
            id=new_item_id(),
            name=name,
            kind=ItemKind.FILE,
            owner_id=owner_id,
            parent_id=parent_id,
            created_at=now,
            updated_at=now,
            mime_type=mime_type,
            size_bytes=size_bytes,
            blob_ref=blob_ref,
        )

    @property
    def is_file(self) -> bool:
        return self.kind is ItemKind.FILE

    @property
    def is_folder(self) -> bool:
        return self.kind is ItemKind.FOLDER

    def with_changes(self, **changes: Any) -> Item:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)


@dataclass(slots=True, frozen=True)
class PathEntry:
    """One breadcrumb segment."""

    id: str
    name: str


@dataclass(slots=True)
class Listing:
    """Folder-scoped or search result, folders and files kept apart."""

    folders: list[Item] = field(default_factory=list)
    files: list[Item] = field(default_factory=list)

    @property
    def items(self) -> list[Item]:
        """Folders first, then files."""
        return [*self.folders, *self.files]

    def __len__(self) -> int:
        return len(self.folders) + len(self.files)


def split_by_kind(items: list[Item]) -> Listing:
    """Partition items into a Listing, preserving order within each kind."""
    listing = Listing()
    for item in items:
        if item.is_folder:
            listing.folders.append(item)
        else:
            listing.files.append(item)
    return listing
