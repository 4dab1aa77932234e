"""Storage usage aggregation."""

from __future__ import annotations

import logging
from typing import Optional

from clouddrive.errors import QuotaExceededError
from clouddrive.models import CategoryUsage, ItemKind, StorageUsage
from clouddrive.store import ItemQuery, ItemStore
from clouddrive.util.mime import CATEGORY_LABELS, CATEGORY_ORDER, categorize
from clouddrive.util.units import GIB

from .tree import TreeResolver

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_BYTES: int = 15 * GIB


class StorageAccountant:
    """Sum non-trashed file sizes per owner, bucketed by MIME category."""

    def __init__(
        self,
        store: ItemStore,
        *,
        tree: Optional[TreeResolver] = None,
        total_bytes: int = DEFAULT_TOTAL_BYTES,
    ) -> None:
        if total_bytes < 0:
            raise ValueError("total_bytes must be non-negative")
        self._store = store
        self._tree = tree or TreeResolver(store)
        self._total_bytes = total_bytes

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    def compute_usage(self, owner_id: str) -> StorageUsage:
        query = ItemQuery(owner_id=owner_id, trashed=False)
        # Records below a trashed folder count as trashed whatever their own flag.
        files = self._tree.drop_trashed_subtrees(self._store.query(ItemKind.FILE, query), owner_id)
        folders = self._tree.drop_trashed_subtrees(
            self._store.query(ItemKind.FOLDER, query), owner_id
        )

        per_category = dict.fromkeys(CATEGORY_ORDER, 0)
        for f in files:
            per_category[categorize(f.mime_type)] += f.size_bytes

        usage = StorageUsage(
            used_bytes=sum(per_category.values()),
            total_bytes=self._total_bytes,
            file_count=len(files),
            folder_count=len(folders),
            breakdown=[
                CategoryUsage(category=c, label=CATEGORY_LABELS[c], bytes=per_category[c])
                for c in CATEGORY_ORDER
            ],
        )
        logger.debug(
            "Usage for %s: %d bytes in %d files",
            owner_id,
            usage.used_bytes,
            usage.file_count,
        )
        return usage

    def check_quota(self, owner_id: str, size_bytes: int) -> None:
        """
        Raise QuotaExceededError if size_bytes more would exceed the allowance.

        A total of 0 disables the check.
        """
        if self._total_bytes == 0:
            return
        used = self.compute_usage(owner_id).used_bytes
        if used + size_bytes > self._total_bytes:
            logger.warning(
                "Quota exceeded for %s: need %d, have %d available",
                owner_id,
                size_bytes,
                self._total_bytes - used,
            )
            raise QuotaExceededError(
                f"Quota exceeded: need {size_bytes} bytes, "
                f"only {max(self._total_bytes - used, 0)} bytes available",
                details={
                    "quota_bytes": self._total_bytes,
                    "used_bytes": used,
                    "required_bytes": size_bytes,
                },
            )
