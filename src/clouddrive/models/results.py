"""Result models for mutation operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional

from .item import Item
from .share import ShareGrant

OperationStatus = Literal["success", "failed"]


class Action(str, Enum):
    """User actions the coordinator applies."""

    CREATE_FOLDER = "create_folder"
    UPLOAD_FILE = "upload_file"
    SET_STARRED = "set_starred"
    RENAME = "rename"
    MOVE = "move"
    TRASH = "trash"
    RESTORE = "restore"
    DELETE_PERMANENT = "delete_permanently"
    EMPTY_TRASH = "empty_trash"
    SHARE = "share"
    REVOKE_SHARE = "revoke_share"


@dataclass(slots=True)
class OperationResult:
    """Outcome of a single user action, as handed to the UI layer."""

    action: Action
    status: OperationStatus
    items: list[Item] = field(default_factory=list)

    error_type: Optional[str] = None
    error_message: Optional[str] = None
    error_details: Optional[dict[str, Any]] = None

    share_grant: Optional[ShareGrant] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"

    @property
    def item(self) -> Optional[Item]:
        """First affected record, if any."""
        return self.items[0] if self.items else None
