"""Breadcrumb resolution and folder-scoped listings over parent pointers."""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterator, Optional

from clouddrive.errors import CorruptTreeError
from clouddrive.models import Item, ItemKind, Listing, PathEntry
from clouddrive.store import ItemQuery, ItemStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH: int = 1000
ROOT_PATH_ID: str = "root"


class TreeResolver:
    """
    Read-only view of the folder forest held by an ItemStore.

    Dangling parent pointers are treated as a root boundary (the walk stops
    and logs a warning); cycles and chains deeper than max_depth raise
    CorruptTreeError.
    """

    def __init__(self, store: ItemStore, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self._store = store
        self._max_depth = max_depth

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def ancestors(self, folder_id: Optional[str], owner_id: str) -> list[Item]:
        """
        Return the folder chain from the outermost reachable ancestor down to
        folder_id itself (inclusive). None resolves to an empty chain.
        """
        chain: list[Item] = []
        seen: set[str] = set()
        current = folder_id

        while current is not None:
            if current in seen:
                raise CorruptTreeError(
                    "Folder cycle detected",
                    details={"folder_id": folder_id, "repeated_id": current},
                )
            if len(chain) >= self._max_depth:
                raise CorruptTreeError(
                    "Folder chain exceeds maximum depth",
                    details={"folder_id": folder_id, "max_depth": self._max_depth},
                )
            seen.add(current)

            folder = self._store.get(ItemKind.FOLDER, current, owner_id)
            if folder is None:
                if chain:
                    logger.warning(
                        "Dangling parent pointer %s under folder %s; truncating path",
                        current,
                        chain[-1].id,
                    )
                else:
                    logger.warning("Folder %s not found; resolving to root", current)
                break

            chain.append(folder)
            current = folder.parent_id

        chain.reverse()
        return chain

    def resolve_path(self, folder_id: Optional[str], owner_id: str) -> list[PathEntry]:
        """Breadcrumb path from root to folder_id, inclusive."""
        return [PathEntry(id=f.id, name=f.name) for f in self.ancestors(folder_id, owner_id)]

    def breadcrumbs(
        self,
        folder_id: Optional[str],
        owner_id: str,
        *,
        root_label: str = "My Drive",
    ) -> list[PathEntry]:
        """resolve_path with the synthetic root entry the dashboard shows first."""
        return [PathEntry(id=ROOT_PATH_ID, name=root_label)] + self.resolve_path(
            folder_id, owner_id
        )

    def in_trashed_subtree(self, folder_id: Optional[str], owner_id: str) -> bool:
        """True if folder_id or any of its ancestors is trashed."""
        return any(f.trashed for f in self.ancestors(folder_id, owner_id))

    def drop_trashed_subtrees(self, items: list[Item], owner_id: str) -> list[Item]:
        """
        Filter out items that sit below a trashed folder.

        Such items can carry trashed=False when they were written after the
        folder was trashed; they still count as trashed. Order is kept.
        """
        hidden: dict[str, bool] = {}
        kept: list[Item] = []
        for item in items:
            parent_id = item.parent_id
            if parent_id is not None:
                if parent_id not in hidden:
                    hidden[parent_id] = self.in_trashed_subtree(parent_id, owner_id)
                if hidden[parent_id]:
                    logger.debug("Hiding %s %s under trashed folder", item.kind.value, item.id)
                    continue
            kept.append(item)
        return kept

    def list_children(self, folder_id: Optional[str], owner_id: str) -> Listing:
        """
        Non-trashed direct children of folder_id (None = root).

        Folders come before files; insertion order is kept within each group.
        A folder inside a trashed subtree lists as empty.
        """
        if folder_id is not None and self.in_trashed_subtree(folder_id, owner_id):
            return Listing()

        query = ItemQuery(owner_id=owner_id, parent_id=folder_id, trashed=False)
        return Listing(
            folders=self._store.query(ItemKind.FOLDER, query),
            files=self._store.query(ItemKind.FILE, query),
        )

    def direct_children(self, folder_id: str, owner_id: str) -> list[Item]:
        """All direct children regardless of trash state, folders first."""
        query = ItemQuery(owner_id=owner_id, parent_id=folder_id)
        return self._store.query(ItemKind.FOLDER, query) + self._store.query(
            ItemKind.FILE, query
        )

    def iter_descendants(self, folder_id: str, owner_id: str) -> Iterator[tuple[Item, int]]:
        """
        Breadth-first walk below folder_id yielding (item, depth).

        Direct children have depth 1. The folder itself is not yielded.
        """
        visited: set[str] = {folder_id}
        q: deque[tuple[str, int]] = deque([(folder_id, 0)])

        while q:
            parent_id, depth = q.popleft()
            if depth >= self._max_depth:
                raise CorruptTreeError(
                    "Folder subtree exceeds maximum depth",
                    details={"folder_id": folder_id, "max_depth": self._max_depth},
                )
            for child in self.direct_children(parent_id, owner_id):
                if child.is_folder:
                    if child.id in visited:
                        raise CorruptTreeError(
                            "Folder cycle detected",
                            details={"folder_id": folder_id, "repeated_id": child.id},
                        )
                    visited.add(child.id)
                    q.append((child.id, depth + 1))
                yield child, depth + 1

    def is_ancestor(self, candidate_id: str, folder_id: Optional[str], owner_id: str) -> bool:
        """True if candidate_id is folder_id or lies on its ancestor chain."""
        return any(f.id == candidate_id for f in self.ancestors(folder_id, owner_id))
