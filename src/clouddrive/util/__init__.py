from .ids import new_blob_path, new_item_id, new_share_id, new_uuid
from .mime import (
    CATEGORY_LABELS,
    CATEGORY_ORDER,
    DEFAULT_MIME,
    categorize,
)
from .time import ensure_utc, now_utc
from .units import GIB, format_bytes

__all__ = [
    "new_uuid",
    "new_item_id",
    "new_share_id",
    "new_blob_path",
    "DEFAULT_MIME",
    "CATEGORY_ORDER",
    "CATEGORY_LABELS",
    "categorize",
    "now_utc",
    "ensure_utc",
    "GIB",
    "format_bytes",
]
