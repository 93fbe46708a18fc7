"""Relative path rules for the storage tree.

Paths are slash-separated and relative to the storage root; the root itself
is the empty string.
"""
from .errors import InvalidPath


def normalize_path(raw: str | None) -> str:
    """Return the canonical relative form of ``raw``.

    Raises:
        InvalidPath: on ``..`` segments or NUL bytes
    """
    if raw is None:
        return ""
    if "\x00" in raw:
        raise InvalidPath("Path contains a NUL byte")

    segments = []
    for segment in raw.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            raise InvalidPath(f"Path traversal rejected: {raw!r}")
        segments.append(segment)
    return "/".join(segments)


def validate_name(name: str) -> str:
    """Check a single path segment (folder or file name)."""
    cleaned = (name or "").strip()
    if not cleaned or cleaned in (".", "..") or "/" in cleaned or "\\" in cleaned or "\x00" in cleaned:
        raise InvalidPath(f"Invalid name: {name!r}")
    return cleaned


def join_path(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


def parent_path(path: str) -> str:
    return path.rpartition("/")[0]


def is_descendant_path(path: str, ancestor: str) -> bool:
    """True when ``path`` lies strictly below ``ancestor``."""
    if ancestor == "":
        return path != ""
    return path.startswith(ancestor + "/")
