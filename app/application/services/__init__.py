"""Application services - business logic layer."""

from .permission_resolver import PermissionResolver, FolderRef, PathRef, RecordRef
from .tree_sync import TreeSynchronizer
from .access_propagator import AccessPropagator
from .permission_service import PermissionService
from .group_service import GroupService
from .folder_service import FolderService
from .upload_service import UploadService
from .auth_service import AuthService

__all__ = [
    "PermissionResolver",
    "FolderRef",
    "PathRef",
    "RecordRef",
    "TreeSynchronizer",
    "AccessPropagator",
    "PermissionService",
    "GroupService",
    "FolderService",
    "UploadService",
    "AuthService",
]
