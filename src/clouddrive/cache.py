"""Client-side cache of view query results."""

from __future__ import annotations

import threading
from typing import Callable, Hashable, Optional

from clouddrive.models import Item

CacheKey = tuple[str, str, Optional[str]]


class ViewCache:
    """
    Memoizes view results per (owner_id, view, folder_id).

    Entries are dropped wholesale per owner after every mutation; there is
    no TTL or size-based eviction.
    """

    def __init__(self) -> None:
        self._entries: dict[CacheKey, list[Item]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def get_or_load(self, key: CacheKey, loader: Callable[[], list[Item]]) -> list[Item]:
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self.hits += 1
                return list(cached)
            self.misses += 1

        loaded = loader()
        with self._lock:
            self._entries[key] = list(loaded)
        return list(loaded)

    def invalidate(self, owner_id: str) -> int:
        """Drop every entry of one owner and return how many were dropped."""
        with self._lock:
            keys = [k for k in self._entries if k[0] == owner_id]
            for k in keys:
                del self._entries[k]
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
