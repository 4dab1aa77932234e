from __future__ import annotations

from enum import Enum

from clouddrive.errors import InvalidArgumentError


class View(str, Enum):
    """Named item subsets shown in the dashboard sidebar."""

    ALL = "all"
    STARRED = "starred"
    SHARED = "shared"
    TRASH = "trash"
    RECENT = "recent"

    @classmethod
    def parse(cls, value: "View | str") -> "View":
        if isinstance(value, View):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InvalidArgumentError(
                f"Unknown view: {value!r}",
                details={"view": value, "allowed": [v.value for v in cls]},
                cause=exc,
            ) from exc
