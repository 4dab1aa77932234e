"""DriveManager: wires the stores and core components behind one facade."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from clouddrive.config import DriveConfig
from clouddrive.errors import AuthError, CloudDriveError, InvalidStateError, QuotaExceededError
from clouddrive.models import (
    AccessLevel,
    Action,
    DownloadLink,
    Item,
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
    ItemStore,
    MinioBlobStore,
    SqlItemStore,
)

from .accounting import StorageAccountant
from .cache import ViewCache
from .coordinator import MutationCoordinator
from .tree import TreeResolver
from .views import ViewFilter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileUpload:
    """One file of a multi-file upload."""

    name: str
    data: bytes
    mime_type: Optional[str] = None


class DriveManager:
    """
    High-level entry point for the dashboard.

    Policy:
        - Mutations return OperationResult. Non-fatal CloudDriveErrors become
          status="failed" with the error type/message/details.
        - Fatal errors (AuthError, InvalidStateError) are raised.
        - Reads return data and raise typed errors.
    """

    def __init__(
        self,
        item_store: ItemStore,
        blob_store: BlobStore,
        *,
        config: Optional[DriveConfig] = None,
    ) -> None:
        self._config = config or DriveConfig()
        self._items = item_store
        self._blobs = blob_store
        self._cache = ViewCache()
        self._tree = TreeResolver(item_store, max_depth=self._config.max_tree_depth)
        self._views = ViewFilter(
            item_store,
            self._tree,
            cache=self._cache,
            recent_limit=self._config.recent_limit,
        )
        self._accountant = StorageAccountant(
            item_store, tree=self._tree, total_bytes=self._config.total_bytes
        )
        self._coordinator = MutationCoordinator(
            item_store,
            blob_store,
            self._tree,
            cache=self._cache,
            accountant=self._accountant,
            signed_url_ttl_sec=self._config.signed_url_ttl_sec,
        )

    @classmethod
    def in_memory(cls, config: Optional[DriveConfig] = None) -> DriveManager:
        """Manager over fresh in-memory stores (useful for tests)."""
        return cls(InMemoryItemStore(), InMemoryBlobStore(), config=config)

    @classmethod
    def from_config(cls, config: DriveConfig) -> DriveManager:
        """Build the SQL item store and the configured blob store."""
        items = SqlItemStore.from_url(config.database_url, timeout=config.request_timeout_sec)
        return cls(items, _build_blob_store(config), config=config)

    @property
    def config(self) -> DriveConfig:
        return self._config

    @property
    def cache(self) -> ViewCache:
        return self._cache

    @property
    def tree(self) -> TreeResolver:
        return self._tree

    @property
    def coordinator(self) -> MutationCoordinator:
        return self._coordinator

    # ----------------------------
    # Reads
    # ----------------------------
    def select_view(
        self,
        view: View | str,
        owner_id: str,
        folder_id: Optional[str] = None,
    ) -> list[Item]:
        view = View.parse(view)
        if view is View.SHARED:
            self._coordinator.reconcile_shares(owner_id)
        return self._views.select_view(view, owner_id, folder_id)

    def list_children(self, folder_id: Optional[str], owner_id: str) -> Listing:
        return self._tree.list_children(folder_id, owner_id)

    def resolve_path(self, folder_id: Optional[str], owner_id: str) -> list[PathEntry]:
        return self._tree.resolve_path(folder_id, owner_id)

    def breadcrumbs(self, folder_id: Optional[str], owner_id: str) -> list[PathEntry]:
        return self._tree.breadcrumbs(folder_id, owner_id, root_label=self._config.root_label)

    def search(self, query: str, owner_id: str) -> Listing:
        return self._coordinator.search(query, owner_id)

    def compute_usage(self, owner_id: str) -> StorageUsage:
        return self._accountant.compute_usage(owner_id)

    def download(self, file_id: str, owner_id: str) -> DownloadLink:
        return self._coordinator.download(file_id, owner_id)

    def read_file(self, file_id: str, owner_id: str) -> bytes:
        return self._coordinator.read_file(file_id, owner_id)

    def open_share(self, grant_id: str, now: Optional[datetime] = None) -> DownloadLink:
        return self._coordinator.open_share(grant_id, now)

    # ----------------------------
    # Mutations
    # ----------------------------
    def create_folder(
        self,
        name: str,
        parent_id: Optional[str],
        owner_id: str,
    ) -> OperationResult:
        return self._run(
            Action.CREATE_FOLDER,
            lambda: [self._coordinator.create_folder(name, parent_id, owner_id)],
        )

    def upload_file(
        self,
        data: bytes,
        name: str,
        mime_type: Optional[str],
        parent_id: Optional[str],
        owner_id: str,
    ) -> OperationResult:
        return self._run(
            Action.UPLOAD_FILE,
            lambda: [
                self._coordinator.upload_file(data, name, mime_type, parent_id, owner_id)
            ],
        )

    def upload_files(
        self,
        uploads: Sequence[FileUpload],
        parent_id: Optional[str],
        owner_id: str,
    ) -> list[OperationResult]:
        """
        Upload several files concurrently, one upload call per file.

        Completion order is not guaranteed; results are returned in input order.
        The whole batch is checked against the quota before any upload starts,
        so concurrent uploads of one batch cannot overshoot it together. The
        check is still best-effort across separate callers.
        """
        if not uploads:
            return []

        try:
            self._accountant.check_quota(owner_id, sum(len(u.data) for u in uploads))
        except QuotaExceededError as exc:
            logger.warning("%s batch rejected: %s", Action.UPLOAD_FILE.value, exc)
            return [_failed_result(Action.UPLOAD_FILE, exc) for _ in uploads]

        workers = min(self._config.upload_workers, len(uploads))
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="clouddrive-upload")
        with pool:
            futures = [
                pool.submit(
                    self.upload_file,
                    u.data,
                    u.name,
                    u.mime_type,
                    parent_id,
                    owner_id,
                )
                for u in uploads
            ]
            return [f.result() for f in futures]

    def set_starred(self, item: Item, starred: bool) -> OperationResult:
        return self._run(
            Action.SET_STARRED,
            lambda: [self._coordinator.set_starred(item, starred)],
        )

    def rename(self, item: Item, new_name: str) -> OperationResult:
        return self._run(Action.RENAME, lambda: [self._coordinator.rename(item, new_name)])

    def move(self, item: Item, new_parent_id: Optional[str]) -> OperationResult:
        return self._run(Action.MOVE, lambda: [self._coordinator.move(item, new_parent_id)])

    def trash(self, item: Item) -> OperationResult:
        return self._run(Action.TRASH, lambda: self._coordinator.trash(item))

    def restore(self, item: Item, *, restore_ancestors: bool = False) -> OperationResult:
        return self._run(
            Action.RESTORE,
            lambda: self._coordinator.restore(item, restore_ancestors=restore_ancestors),
        )

    def delete_permanently(self, item: Item) -> OperationResult:
        return self._run(
            Action.DELETE_PERMANENT,
            lambda: self._coordinator.delete_permanently(item),
        )

    def empty_trash(self, owner_id: str) -> OperationResult:
        def apply() -> list[Item]:
            self._coordinator.empty_trash(owner_id)
            return []

        return self._run(Action.EMPTY_TRASH, apply)

    def share(
        self,
        file_id: str,
        owner_id: str,
        *,
        shared_with: Optional[str] = None,
        access_level: AccessLevel | str = AccessLevel.VIEW,
        expires_at: Optional[datetime] = None,
    ) -> OperationResult:
        def apply() -> list[Item]:
            file, grant = self._coordinator.share(
                file_id,
                owner_id,
                shared_with=shared_with,
                access_level=access_level,
                expires_at=expires_at,
            )
            grants.append(grant)
            return [file]

        grants: list[ShareGrant] = []
        result = self._run(Action.SHARE, apply)
        if grants:
            result.share_grant = grants[0]
        return result

    def revoke_share(self, grant_id: str, owner_id: str) -> OperationResult:
        return self._run(
            Action.REVOKE_SHARE,
            lambda: [self._coordinator.revoke_share(grant_id, owner_id)],
        )

    # ----------------------------
    # Internals
    # ----------------------------
    def _run(self, action: Action, apply: Callable[[], list[Item]]) -> OperationResult:
        try:
            items = apply()
        except CloudDriveError as exc:
            if _is_fatal(exc):
                raise
            logger.warning("%s failed: %s", action.value, exc)
            return _failed_result(action, exc)
        return OperationResult(action=action, status="success", items=items)


def _build_blob_store(config: DriveConfig) -> BlobStore:
    if config.blob_backend == "minio":
        return MinioBlobStore.from_settings(
            config.minio_endpoint,  # type: ignore[arg-type]
            config.minio_access_key,  # type: ignore[arg-type]
            config.minio_secret_key,  # type: ignore[arg-type]
            config.minio_bucket,
            secure=config.minio_secure,
            timeout=config.request_timeout_sec,
        )
    if config.blob_backend == "gdrive":
        return GoogleDriveBlobStore(
            config.drive_auth,  # type: ignore[arg-type]
            config.drive_folder_id,  # type: ignore[arg-type]
            timeout=config.request_timeout_sec,
            max_retries=config.drive_max_retries,
        )
    return InMemoryBlobStore()


def _is_fatal(exc: CloudDriveError) -> bool:
    return isinstance(exc, (AuthError, InvalidStateError))


def _failed_result(action: Action, exc: CloudDriveError) -> OperationResult:
    return OperationResult(
        action=action,
        status="failed",
        error_type=exc.__class__.__name__,
        error_message=str(exc),
        error_details=getattr(exc, "details", None),
    )
