"""User actions applied as sequences of Item Store / Blob Store calls."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from clouddrive.errors import (
    DuplicateNameError,
    InvalidArgumentError,
    InvalidParentError,
    NotFoundError,
    NotInTrashError,
)
from clouddrive.models import (
    AccessLevel,
    DownloadLink,
    Item,
    ItemKind,
    Listing,
    ShareGrant,
    split_by_kind,
)
from clouddrive.store import BlobStore, ItemQuery, ItemStore
from clouddrive.util.ids import new_blob_path, new_share_id
from clouddrive.util.time import now_utc

from .accounting import StorageAccountant
from .cache import ViewCache
from .tree import TreeResolver

logger = logging.getLogger(__name__)

DEFAULT_SIGNED_URL_TTL_SEC: int = 3600


def _clean_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidArgumentError("Name must be a non-empty string", details={"name": name})
    return name.strip()


class MutationCoordinator:
    """
    Apply user actions against the stores.

    Each action either completes or raises; there is no rollback across the
    Item Store and Blob Store, so a failure between steps surfaces to the
    caller. The only local recovery is removing the blob of an upload whose
    record could not be inserted. The owner's cached views are invalidated
    after every action, successful or not.
    """

    def __init__(
        self,
        items: ItemStore,
        blobs: BlobStore,
        tree: TreeResolver,
        *,
        cache: Optional[ViewCache] = None,
        accountant: Optional[StorageAccountant] = None,
        signed_url_ttl_sec: int = DEFAULT_SIGNED_URL_TTL_SEC,
    ) -> None:
        if signed_url_ttl_sec <= 0:
            raise ValueError("signed_url_ttl_sec must be positive")
        self._items = items
        self._blobs = blobs
        self._tree = tree
        self._cache = cache
        self._accountant = accountant
        self._signed_url_ttl_sec = signed_url_ttl_sec
        # Blob refs whose compensating delete failed; candidates for GC.
        self.orphaned_blobs: list[str] = []

    # ----------------------------
    # Create
    # ----------------------------
    def create_folder(self, name: str, parent_id: Optional[str], owner_id: str) -> Item:
        name = _clean_name(name)
        with self._mutating(owner_id):
            self._require_parent(parent_id, owner_id)
            self._require_unique_folder_name(name, parent_id, owner_id)

            folder = self._items.insert(Item.new_folder(name, owner_id, parent_id))

        logger.info("Folder created: %s (ID: %s, parent: %s)", folder.name, folder.id, parent_id)
        return folder

    def upload_file(
        self,
        data: bytes,
        name: str,
        mime_type: Optional[str],
        parent_id: Optional[str],
        owner_id: str,
    ) -> Item:
        """
        Store bytes, then insert the File record that references them.

        Raises:
            InvalidParentError: parent_id is set but not a live folder of owner.
            QuotaExceededError: the upload would exceed the storage allowance.
            StoreUnavailableError: either backend failed.
        """
        name = _clean_name(name)
        data = bytes(data)
        with self._mutating(owner_id):
            self._require_parent(parent_id, owner_id)
            if self._accountant is not None:
                self._accountant.check_quota(owner_id, len(data))

            path = new_blob_path(owner_id, name)
            blob_ref = self._blobs.upload(path, data, mime_type)

            item = Item.new_file(
                name,
                owner_id,
                blob_ref=blob_ref,
                size_bytes=len(data),
                mime_type=mime_type,
                parent_id=parent_id,
            )
            try:
                item = self._items.insert(item)
            except Exception:
                logger.exception("Failed to record upload %s; removing blob %s", name, blob_ref)
                self._compensate_blob(blob_ref)
                raise

        logger.info("File uploaded: %s (ID: %s, size: %d)", item.name, item.id, item.size_bytes)
        return item

    # ----------------------------
    # Update
    # ----------------------------
    def set_starred(self, item: Item, starred: bool) -> Item:
        with self._mutating(item.owner_id):
            current = self._reload(item)
            if current.starred == bool(starred):
                return current
            updated = self._items.update(
                current.kind,
                current.id,
                current.owner_id,
                starred=bool(starred),
                updated_at=now_utc(),
            )

        logger.info(
            "%s %s: %s",
            "Starred" if starred else "Unstarred",
            updated.kind.value,
            updated.id,
        )
        return updated

    def rename(self, item: Item, new_name: str) -> Item:
        new_name = _clean_name(new_name)
        with self._mutating(item.owner_id):
            current = self._reload(item)
            if current.name == new_name:
                return current
            if current.is_folder and not current.trashed:
                self._require_unique_folder_name(
                    new_name, current.parent_id, current.owner_id, exclude_id=current.id
                )
            updated = self._items.update(
                current.kind,
                current.id,
                current.owner_id,
                name=new_name,
                updated_at=now_utc(),
            )

        logger.info(
            "Renamed %s %s: %s -> %s",
            updated.kind.value,
            updated.id,
            current.name,
            new_name,
        )
        return updated

    def move(self, item: Item, new_parent_id: Optional[str]) -> Item:
        with self._mutating(item.owner_id):
            current = self._reload(item)
            if current.parent_id == new_parent_id:
                return current

            self._require_parent(new_parent_id, current.owner_id)
            if current.is_folder and self._tree.is_ancestor(
                current.id, new_parent_id, current.owner_id
            ):
                raise InvalidParentError(
                    "Move would create a cycle",
                    details={"id": current.id, "new_parent_id": new_parent_id},
                )
            if current.is_folder and not current.trashed:
                self._require_unique_folder_name(
                    current.name, new_parent_id, current.owner_id, exclude_id=current.id
                )

            updated = self._items.update(
                current.kind,
                current.id,
                current.owner_id,
                parent_id=new_parent_id,
                updated_at=now_utc(),
            )

        logger.info(
            "Moved %s %s: %s -> %s",
            updated.kind.value,
            updated.id,
            current.parent_id,
            new_parent_id,
        )
        return updated

    # ----------------------------
    # Trash lifecycle
    # ----------------------------
    def trash(self, item: Item) -> list[Item]:
        """
        Move an item, and for folders its whole subtree, to the trash.

        Descendants already in the trash keep their own trash marker so that
        restore() puts back exactly what this call changed. Trashing an item
        that is already trashed is a no-op.

        Returns:
            The affected records, the trashed item first.
        """
        with self._mutating(item.owner_id):
            current = self._reload(item)
            if current.trashed:
                logger.debug("%s %s is already in trash", current.kind.value, current.id)
                return [current]

            now = now_utc()
            marks = {
                "trashed": True,
                "trashed_at": now,
                "trash_root_id": current.id,
                "updated_at": now,
            }
            affected = [self._items.update(current.kind, current.id, current.owner_id, **marks)]

            if current.is_folder:
                for child, _ in self._tree.iter_descendants(current.id, current.owner_id):
                    if child.trashed:
                        continue
                    affected.append(
                        self._items.update(child.kind, child.id, child.owner_id, **marks)
                    )

        logger.info(
            "Moved to trash: %s %s (%d items)",
            current.kind.value,
            current.id,
            len(affected),
        )
        return affected

    def restore(self, item: Item, *, restore_ancestors: bool = False) -> list[Item]:
        """
        Take an item, and the part of its subtree trashed with it, out of the trash.

        If a containing folder is still trashed the item would be unreachable,
        so this raises InvalidParentError unless restore_ancestors is True, in
        which case the trashed ancestor folders themselves (not their other
        contents) are restored first. Contents left in the trash are re-rooted
        so that they stay there on a later trash/restore of those folders.

        Raises:
            NotInTrashError: the item is not trashed.
            InvalidParentError: an ancestor is trashed and restore_ancestors is False.
        """
        with self._mutating(item.owner_id):
            current = self._reload(item)
            if not current.trashed:
                raise NotInTrashError(
                    f"{current.kind.value.capitalize()} is not in trash: {current.id}",
                    details={"id": current.id, "kind": current.kind.value},
                )

            now = now_utc()
            clears = {
                "trashed": False,
                "trashed_at": None,
                "trash_root_id": None,
                "updated_at": now,
            }
            affected: list[Item] = []

            trashed_ancestors = [
                f for f in self._tree.ancestors(current.parent_id, current.owner_id) if f.trashed
            ]
            if trashed_ancestors:
                if not restore_ancestors:
                    raise InvalidParentError(
                        "A containing folder is in trash; restore it first",
                        details={
                            "id": current.id,
                            "trashed_ancestor_ids": [f.id for f in trashed_ancestors],
                        },
                    )
                for folder in trashed_ancestors:
                    logger.warning("Restoring trashed ancestor %s of %s", folder.id, current.id)
                    affected.append(
                        self._items.update(ItemKind.FOLDER, folder.id, folder.owner_id, **clears)
                    )

            marker = current.trash_root_id or current.id
            affected.append(
                self._items.update(current.kind, current.id, current.owner_id, **clears)
            )

            if current.is_folder:
                for child, _ in self._tree.iter_descendants(current.id, current.owner_id):
                    if child.trashed and child.trash_root_id == marker:
                        affected.append(
                            self._items.update(child.kind, child.id, child.owner_id, **clears)
                        )

            for folder in trashed_ancestors:
                self._detach_trash_marker(folder)

        logger.info(
            "Restored from trash: %s %s (%d items)",
            current.kind.value,
            current.id,
            len(affected),
        )
        return affected

    def delete_permanently(self, item: Item) -> list[Item]:
        """
        Destroy a trashed item and, for folders, everything below it.

        Blobs are removed first, deepest items first; records (and the share
        grants of files) are removed afterwards in the same order.

        Raises:
            NotInTrashError: the item is not trashed (nothing is changed).
        """
        with self._mutating(item.owner_id):
            current = self._reload(item)
            if not current.trashed:
                raise NotInTrashError(
                    "Only items in trash can be deleted permanently",
                    details={"id": current.id, "kind": current.kind.value},
                )

            targets: list[tuple[Item, int]] = [(current, 0)]
            if current.is_folder:
                targets.extend(self._tree.iter_descendants(current.id, current.owner_id))
            # Deep -> shallow so a parent never disappears before its children.
            ordered = [t for t, _ in sorted(targets, key=lambda x: x[1], reverse=True)]

            for target in ordered:
                if target.is_file and target.blob_ref:
                    self._blobs.remove(target.blob_ref)

            for target in ordered:
                if target.is_file:
                    self._items.delete_shares_for_file(target.id)
                self._items.delete(target.kind, target.id, target.owner_id)

        logger.info(
            "Permanently deleted: %s %s (%d items)",
            current.kind.value,
            current.id,
            len(ordered),
        )
        return ordered

    def empty_trash(self, owner_id: str) -> int:
        """Permanently delete everything in the owner's trash; return records removed."""
        query = ItemQuery(owner_id=owner_id, trashed=True)
        candidates = self._items.query(ItemKind.FOLDER, query) + self._items.query(
            ItemKind.FILE, query
        )

        removed = 0
        for candidate in candidates:
            # Already gone with a folder deleted earlier in this loop.
            if self._items.get(candidate.kind, candidate.id, owner_id) is None:
                continue
            removed += len(self.delete_permanently(candidate))

        logger.info("Trash emptied for %s: %d items deleted", owner_id, removed)
        return removed

    # ----------------------------
    # Sharing
    # ----------------------------
    def share(
        self,
        file_id: str,
        owner_id: str,
        *,
        shared_with: Optional[str] = None,
        access_level: AccessLevel | str = AccessLevel.VIEW,
        expires_at: Optional[datetime] = None,
    ) -> tuple[Item, ShareGrant]:
        """
        Grant access to a file and mark it shared.

        shared_with None (or blank) creates a public link.

        Raises:
            NotFoundError: no such file for owner_id.
            InvalidArgumentError: bad access level or an expiry in the past.
        """
        try:
            level = AccessLevel(access_level)
        except ValueError as exc:
            raise InvalidArgumentError(
                f"Unknown access level: {access_level!r}",
                details={"access_level": access_level},
                cause=exc,
            ) from exc

        now = now_utc()
        if expires_at is not None:
            if expires_at.tzinfo is None:
                raise InvalidArgumentError("expires_at must be timezone-aware")
            if expires_at <= now:
                raise InvalidArgumentError(
                    "expires_at must be in the future",
                    details={"expires_at": expires_at.isoformat()},
                )

        recipient = shared_with.strip() if shared_with else None

        with self._mutating(owner_id):
            file = self._require_file(file_id, owner_id)
            grant = self._items.insert_share(
                ShareGrant(
                    id=new_share_id(),
                    file_id=file.id,
                    shared_by=owner_id,
                    shared_with=recipient or None,
                    access_level=level,
                    expires_at=expires_at,
                    created_at=now,
                )
            )
            file = self._items.update(ItemKind.FILE, file.id, owner_id, shared=True, updated_at=now)

        logger.info(
            "File shared: %s with %s (%s)",
            file.id,
            grant.shared_with or "public link",
            level.value,
        )
        return file, grant

    def revoke_share(self, grant_id: str, owner_id: str) -> Item:
        """Delete one grant and recompute the file's shared flag."""
        with self._mutating(owner_id):
            grant = self._items.get_share(grant_id)
            if grant is None or grant.shared_by != owner_id:
                raise NotFoundError(f"Share not found: {grant_id}", details={"grant_id": grant_id})
            file = self._require_file(grant.file_id, owner_id)

            self._items.delete_share(grant_id)
            file = self._sync_shared_flag(file)

        logger.info("Share revoked: %s on file %s", grant_id, file.id)
        return file

    def reconcile_shares(self, owner_id: str, now: Optional[datetime] = None) -> list[Item]:
        """
        Drop expired grants and clear shared on files left without an active one.

        Returns:
            Files whose shared flag changed.
        """
        current_time = now or now_utc()
        changed: list[Item] = []
        for file in self._items.query(ItemKind.FILE, ItemQuery(owner_id=owner_id, shared=True)):
            grants = self._items.list_shares(file.id)
            expired = [g for g in grants if not g.is_active(current_time)]
            if grants and not expired:
                continue
            with self._mutating(owner_id):
                for grant in expired:
                    self._items.delete_share(grant.id)
                updated = self._sync_shared_flag(file, current_time)
            if updated.shared != file.shared:
                changed.append(updated)

        if changed:
            logger.info("Cleared shared flag on %d files for %s", len(changed), owner_id)
        return changed

    def open_share(self, grant_id: str, now: Optional[datetime] = None) -> DownloadLink:
        """Resolve an active grant to a download link for the shared file."""
        grant = self._items.get_share(grant_id)
        if grant is None or not grant.is_active(now):
            raise NotFoundError(
                f"Share not found or expired: {grant_id}",
                details={"grant_id": grant_id},
            )

        file = self._items.get(ItemKind.FILE, grant.file_id, grant.shared_by)
        if file is None or file.trashed:
            raise NotFoundError(
                f"Shared file unavailable: {grant.file_id}",
                details={"grant_id": grant_id},
            )
        return self._link_for(file)

    # ----------------------------
    # Reads that need the blob store
    # ----------------------------
    def search(self, query: str, owner_id: str) -> Listing:
        """Case-insensitive substring match on names of non-trashed items."""
        needle = (query or "").strip()
        if not needle:
            return Listing()

        q = ItemQuery(owner_id=owner_id, trashed=False, name_ilike=needle)
        matches = self._items.query(ItemKind.FOLDER, q) + self._items.query(ItemKind.FILE, q)
        return split_by_kind(self._tree.drop_trashed_subtrees(matches, owner_id))

    def download(self, file_id: str, owner_id: str) -> DownloadLink:
        return self._link_for(self._require_file(file_id, owner_id))

    def read_file(self, file_id: str, owner_id: str) -> bytes:
        file = self._require_file(file_id, owner_id)
        return self._blobs.download(file.blob_ref)  # type: ignore[arg-type]

    # ----------------------------
    # Internals
    # ----------------------------
    @contextmanager
    def _mutating(self, owner_id: str) -> Iterator[None]:
        try:
            yield
        finally:
            if self._cache is not None:
                self._cache.invalidate(owner_id)

    def _reload(self, item: Item) -> Item:
        current = self._items.get(item.kind, item.id, item.owner_id)
        if current is None:
            raise NotFoundError(
                f"{item.kind.value.capitalize()} not found: {item.id}",
                details={"id": item.id, "kind": item.kind.value},
            )
        return current

    def _require_file(self, file_id: str, owner_id: str) -> Item:
        file = self._items.get(ItemKind.FILE, file_id, owner_id)
        if file is None:
            raise NotFoundError(f"File not found: {file_id}", details={"file_id": file_id})
        return file

    def _require_parent(self, parent_id: Optional[str], owner_id: str) -> None:
        if parent_id is None:
            return
        parent = self._items.get(ItemKind.FOLDER, parent_id, owner_id)
        if parent is None:
            raise InvalidParentError(
                f"Parent folder does not exist: {parent_id}",
                details={"parent_id": parent_id},
            )
        if self._tree.in_trashed_subtree(parent_id, owner_id):
            raise InvalidParentError(
                f"Parent folder is in trash: {parent_id}",
                details={"parent_id": parent_id},
            )

    def _require_unique_folder_name(
        self,
        name: str,
        parent_id: Optional[str],
        owner_id: str,
        *,
        exclude_id: Optional[str] = None,
    ) -> None:
        siblings = self._items.query(
            ItemKind.FOLDER,
            ItemQuery(owner_id=owner_id, parent_id=parent_id, name=name, trashed=False),
        )
        if any(s.id != exclude_id for s in siblings):
            raise DuplicateNameError(
                "A folder with this name already exists.",
                details={"name": name, "parent_id": parent_id},
            )

    def _detach_trash_marker(self, folder: Item) -> None:
        """
        Re-root what is still trashed below a folder restored out of a cascade.

        Each remaining branch gets the id of its topmost trashed item as its
        marker, so a later trash/restore of the folder leaves it alone.
        """
        old_marker = folder.trash_root_id or folder.id
        new_markers: dict[str, str] = {}
        for child, _ in self._tree.iter_descendants(folder.id, folder.owner_id):
            if not child.trashed or child.trash_root_id != old_marker:
                continue
            marker = new_markers.get(child.parent_id, child.id)  # type: ignore[arg-type]
            if child.is_folder:
                new_markers[child.id] = marker
            self._items.update(child.kind, child.id, child.owner_id, trash_root_id=marker)
            logger.debug("Re-rooted trashed %s %s under %s", child.kind.value, child.id, marker)

    def _sync_shared_flag(self, file: Item, now: Optional[datetime] = None) -> Item:
        active = any(g.is_active(now) for g in self._items.list_shares(file.id))
        if active == file.shared:
            return file
        return self._items.update(
            ItemKind.FILE, file.id, file.owner_id, shared=active, updated_at=now_utc()
        )

    def _link_for(self, file: Item) -> DownloadLink:
        url = self._blobs.create_signed_url(
            file.blob_ref,  # type: ignore[arg-type]
            self._signed_url_ttl_sec,
        )
        return DownloadLink(
            url=url,
            file_name=file.name,
            mime_type=file.mime_type,
            expires_in=self._signed_url_ttl_sec,
        )

    def _compensate_blob(self, blob_ref: str) -> None:
        try:
            self._blobs.remove(blob_ref)
        except Exception:
            logger.exception("Compensating delete failed; blob %s is orphaned", blob_ref)
            self.orphaned_blobs.append(blob_ref)
