# Repository Pattern Implementation
"""
Repositories abstract database operations.
Each entity has its own repository; all of them share one aiosqlite
connection per request and return dicts or domain dataclasses.
"""
from .base import AsyncRepository, AsyncConnectionProtocol
from .folder_repository import AsyncFolderRepository
from .permission_repository import AsyncPermissionRepository
from .user_repository import AsyncUserRepository
from .group_repository import AsyncGroupRepository
from .session_repository import AsyncSessionRepository

__all__ = [
    "AsyncRepository",
    "AsyncConnectionProtocol",
    "AsyncFolderRepository",
    "AsyncPermissionRepository",
    "AsyncUserRepository",
    "AsyncGroupRepository",
    "AsyncSessionRepository",
]
