"""Storage usage and download models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(slots=True, frozen=True)
class CategoryUsage:
    category: str
    label: str
    bytes: int


@dataclass(slots=True)
class StorageUsage:
    """Aggregate of non-trashed file sizes for one owner."""

    used_bytes: int
    total_bytes: int
    file_count: int = 0
    folder_count: int = 0
    breakdown: list[CategoryUsage] = field(default_factory=list)

    @property
    def available_bytes(self) -> int:
        return max(self.total_bytes - self.used_bytes, 0)

    @property
    def percent_used(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.used_bytes / self.total_bytes * 100


@dataclass(slots=True, frozen=True)
class DownloadLink:
    url: str
    file_name: str
    mime_type: Optional[str] = None
    expires_in: Optional[int] = None
