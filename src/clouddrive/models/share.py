"""Share grant model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from clouddrive.util.time import ensure_utc, now_utc


class AccessLevel(str, Enum):
    VIEW = "view"
    EDIT = "edit"


@dataclass(slots=True)
class ShareGrant:
    """
    Grant of access to a single file.

    shared_with None means a public link: anybody holding the grant id can
    open the file until expires_at.
    """

    id: str
    file_id: str
    shared_by: str
    shared_with: Optional[str] = None
    access_level: AccessLevel = AccessLevel.VIEW
    expires_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=now_utc)

    def __post_init__(self) -> None:
        if not isinstance(self.access_level, AccessLevel):
            self.access_level = AccessLevel(self.access_level)

    @property
    def is_public(self) -> bool:
        return self.shared_with is None

    def is_active(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return True
        current = ensure_utc(now) if now is not None else now_utc()
        return ensure_utc(self.expires_at) > current
