"""In-memory Item Store and Blob Store (per-instance state, used by tests)."""

from __future__ import annotations

import threading
from typing import Any, Optional

from clouddrive.errors import NotFoundError
from clouddrive.models import Item, ItemKind, ShareGrant

from .base import BlobStore, ItemQuery, ItemStore, check_updatable


class InMemoryItemStore(ItemStore):
    """
    Dict-backed ItemStore.

    Rows are kept in insertion order per table; records handed out are copies
    so callers cannot mutate stored state behind the store's back.
    """

    def __init__(self) -> None:
        self._tables: dict[ItemKind, dict[str, Item]] = {
            ItemKind.FILE: {},
            ItemKind.FOLDER: {},
        }
        self._shares: dict[str, ShareGrant] = {}
        self._lock = threading.RLock()

    def insert(self, item: Item) -> Item:
        with self._lock:
            table = self._tables[item.kind]
            if item.id in table:
                raise ValueError(f"Duplicate item id: {item.id}")
            table[item.id] = item.with_changes()
            return item.with_changes()

    def get(self, kind: ItemKind, item_id: str, owner_id: str) -> Optional[Item]:
        with self._lock:
            item = self._tables[kind].get(item_id)
            if item is None or item.owner_id != owner_id:
                return None
            return item.with_changes()

    def update(self, kind: ItemKind, item_id: str, owner_id: str, **fields: Any) -> Item:
        check_updatable(fields)
        with self._lock:
            table = self._tables[kind]
            item = table.get(item_id)
            if item is None or item.owner_id != owner_id:
                raise NotFoundError(
                    f"{kind.value.capitalize()} not found: {item_id}",
                    details={"kind": kind.value, "id": item_id},
                )
            updated = item.with_changes(**fields)
            table[item_id] = updated
            return updated.with_changes()

    def delete(self, kind: ItemKind, item_id: str, owner_id: str) -> None:
        with self._lock:
            table = self._tables[kind]
            item = table.get(item_id)
            if item is not None and item.owner_id == owner_id:
                del table[item_id]

    def query(self, kind: ItemKind, query: ItemQuery) -> list[Item]:
        with self._lock:
            rows = [item for item in self._tables[kind].values() if query.matches(item)]

        if query.order_by is not None:
            rows.sort(key=lambda x: getattr(x, query.order_by), reverse=query.descending)
        if query.limit is not None:
            rows = rows[: query.limit]
        return [row.with_changes() for row in rows]

    def insert_share(self, grant: ShareGrant) -> ShareGrant:
        with self._lock:
            if grant.id in self._shares:
                raise ValueError(f"Duplicate share id: {grant.id}")
            self._shares[grant.id] = grant
            return grant

    def get_share(self, grant_id: str) -> Optional[ShareGrant]:
        with self._lock:
            return self._shares.get(grant_id)

    def list_shares(self, file_id: str) -> list[ShareGrant]:
        with self._lock:
            return [g for g in self._shares.values() if g.file_id == file_id]

    def delete_share(self, grant_id: str) -> None:
        with self._lock:
            self._shares.pop(grant_id, None)

    def delete_shares_for_file(self, file_id: str) -> int:
        with self._lock:
            ids = [gid for gid, g in self._shares.items() if g.file_id == file_id]
            for gid in ids:
                del self._shares[gid]
            return len(ids)


class InMemoryBlobStore(BlobStore):
    """Dict-backed BlobStore; signed URLs use the memory:// scheme."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self._content_types: dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    def __contains__(self, path: object) -> bool:
        return path in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        with self._lock:
            self._blobs[path] = bytes(data)
            self._content_types[path] = content_type
        return path

    def download(self, path: str) -> bytes:
        with self._lock:
            if path not in self._blobs:
                raise NotFoundError(f"Blob not found: {path}", details={"path": path})
            return self._blobs[path]

    def remove(self, path: str) -> None:
        with self._lock:
            self._blobs.pop(path, None)
            self._content_types.pop(path, None)

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        with self._lock:
            if path not in self._blobs:
                raise NotFoundError(f"Blob not found: {path}", details={"path": path})
        return f"memory://{path}?ttl={int(ttl_seconds)}"
