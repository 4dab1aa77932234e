from __future__ import annotations

import uuid


def new_uuid() -> str:
    """Generate a UUID4 string."""
    return str(uuid.uuid4())


def new_item_id() -> str:
    """Generate a new File/Folder id."""
    return new_uuid()


def new_share_id() -> str:
    """Generate a new ShareGrant id."""
    return new_uuid()


def new_blob_path(owner_id: str, name: str) -> str:
    """
    Build an object key for uploaded bytes.

    Keys are namespaced by owner and made unique with a UUID so two uploads of
    the same name never collide: "<owner_id>/<uuid>-<name>".
    """
    safe_name = name.replace("/", "_").strip() or "file"
    return f"{owner_id}/{new_uuid()}-{safe_name}"
