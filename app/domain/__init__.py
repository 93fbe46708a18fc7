"""Domain layer - types, errors and path rules shared by every other layer."""
from .errors import (
    GalleryError, Unauthorized, AccessDenied, NotFound, Conflict,
    InvalidInput, InvalidPath, StorageUnavailable,
)
from .models import (
    AccessLevel, PrincipalType, Role, Folder, PermissionEntry, Principal, SyncResult,
)
from .paths import normalize_path, validate_name, join_path, parent_path, is_descendant_path

__all__ = [
    "GalleryError",
    "Unauthorized",
    "AccessDenied",
    "NotFound",
    "Conflict",
    "InvalidInput",
    "InvalidPath",
    "StorageUnavailable",
    "AccessLevel",
    "PrincipalType",
    "Role",
    "Folder",
    "PermissionEntry",
    "Principal",
    "SyncResult",
    "normalize_path",
    "validate_name",
    "join_path",
    "parent_path",
    "is_descendant_path",
]
