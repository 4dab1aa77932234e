from __future__ import annotations

_UNITS: tuple[str, ...] = ("B", "KB", "MB", "GB", "TB")

GIB: int = 1024 ** 3


def format_bytes(num_bytes: int) -> str:
    """Render a byte count like the dashboard's storage card ("2.50 MB")."""
    if num_bytes < 0:
        raise ValueError("num_bytes must be non-negative")
    if num_bytes == 0:
        return "0 B"

    i = 0
    while num_bytes >= 1024 ** (i + 1) and i < len(_UNITS) - 1:
        i += 1
    return f"{num_bytes / (1024 ** i):.2f} {_UNITS[i]}"
