"""Application layer - business logic services.

This layer contains application services that orchestrate domain operations.
Services are independent of HTTP/FastAPI and can be tested in isolation.
"""

from .services import (
    PermissionResolver,
    TreeSynchronizer,
    AccessPropagator,
    PermissionService,
    GroupService,
    FolderService,
    UploadService,
)

__all__ = [
    "PermissionResolver",
    "TreeSynchronizer",
    "AccessPropagator",
    "PermissionService",
    "GroupService",
    "FolderService",
    "UploadService",
]
