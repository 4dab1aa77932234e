from __future__ import annotations

from typing import Optional

DEFAULT_MIME: str = "application/octet-stream"

# Storage categories in priority order; the first matching bucket wins.
CATEGORY_IMAGE: str = "image"
CATEGORY_VIDEO: str = "video"
CATEGORY_AUDIO: str = "audio"
CATEGORY_DOCUMENT: str = "document"
CATEGORY_OTHER: str = "other"

CATEGORY_ORDER: tuple[str, ...] = (
    CATEGORY_IMAGE,
    CATEGORY_VIDEO,
    CATEGORY_AUDIO,
    CATEGORY_DOCUMENT,
    CATEGORY_OTHER,
)

CATEGORY_LABELS: dict[str, str] = {
    CATEGORY_IMAGE: "Images",
    CATEGORY_VIDEO: "Videos",
    CATEGORY_AUDIO: "Audio",
    CATEGORY_DOCUMENT: "Documents",
    CATEGORY_OTHER: "Others",
}

_CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (CATEGORY_IMAGE, ("image",)),
    (CATEGORY_VIDEO, ("video",)),
    (CATEGORY_AUDIO, ("audio",)),
    (CATEGORY_DOCUMENT, ("pdf", "doc", "sheet", "text", "presentation")),
)


def categorize(mime_type: Optional[str]) -> str:
    """
    Bucket a MIME type into a storage category.

    Matching is a case-insensitive substring test checked in strict priority
    order (image, video, audio, document); anything else, including a missing
    MIME type, is "other".
    """
    if not mime_type:
        return CATEGORY_OTHER
    lowered = mime_type.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(key in lowered for key in keywords):
            return category
    return CATEGORY_OTHER
