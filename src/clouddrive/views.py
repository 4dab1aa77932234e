"""Predicate-based item views (all / starred / shared / trash / recent)."""

from __future__ import annotations

from typing import Optional

from clouddrive.models import Item, ItemKind, View
from clouddrive.store import ItemQuery, ItemStore

from .cache import ViewCache
from .tree import TreeResolver

DEFAULT_RECENT_LIMIT: int = 10


class ViewFilter:
    """
    Classify an owner's items into named views.

    Every view lists folders before files except RECENT, which is ordered
    purely by updated_at (newest first) across both kinds.
    """

    def __init__(
        self,
        store: ItemStore,
        tree: TreeResolver,
        *,
        cache: Optional[ViewCache] = None,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
    ) -> None:
        if recent_limit < 0:
            raise ValueError("recent_limit must be non-negative")
        self._store = store
        self._tree = tree
        self._cache = cache
        self._recent_limit = recent_limit

    def select_view(
        self,
        view: View | str,
        owner_id: str,
        folder_id: Optional[str] = None,
    ) -> list[Item]:
        view = View.parse(view)
        # Only ALL is folder-scoped; keep other keys independent of folder_id.
        scope = folder_id if view is View.ALL else None

        if self._cache is None:
            return self._load(view, owner_id, scope)
        return self._cache.get_or_load(
            (owner_id, view.value, scope),
            lambda: self._load(view, owner_id, scope),
        )

    def _load(self, view: View, owner_id: str, folder_id: Optional[str]) -> list[Item]:
        if view is View.ALL:
            return self._tree.list_children(folder_id, owner_id).items
        if view is View.STARRED:
            return self._live(ItemQuery(owner_id=owner_id, starred=True, trashed=False))
        if view is View.SHARED:
            return self._live(ItemQuery(owner_id=owner_id, shared=True, trashed=False))
        if view is View.TRASH:
            return self._both_kinds(ItemQuery(owner_id=owner_id, trashed=True))
        return self._recent(owner_id)

    def _both_kinds(self, query: ItemQuery) -> list[Item]:
        return self._store.query(ItemKind.FOLDER, query) + self._store.query(
            ItemKind.FILE, query
        )

    def _live(self, query: ItemQuery) -> list[Item]:
        return self._tree.drop_trashed_subtrees(self._both_kinds(query), query.owner_id)

    def _recent(self, owner_id: str) -> list[Item]:
        if self._recent_limit == 0:
            return []
        # No store-side limit: hidden items under trashed folders must not
        # take slots from visible ones.
        query = ItemQuery(
            owner_id=owner_id,
            trashed=False,
            order_by="updated_at",
            descending=True,
        )
        merged = self._live(query)
        merged.sort(key=lambda x: x.updated_at, reverse=True)
        return merged[: self._recent_limit]
