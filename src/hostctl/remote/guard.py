"""Protected-target guard for destructive container operations."""


def display_name(name: str | None) -> str:
    """Docker reports names with a leading slash; strip it for display and matching."""
    return (name or "").lstrip("/")


def is_protected(name: str | None, marker: str) -> bool:
    """True when the name contains the platform's own component marker (case-insensitive)."""
    if not name or not marker:
        return False
    return marker.lower() in display_name(name).lower()
