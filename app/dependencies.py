"""Shared FastAPI dependencies and service factories.

Services are built per request from repositories over one pooled
connection; the notifier, storage tree and sync lock come from
``app.state`` and are shared by the whole process.
"""
from typing import AsyncIterator

import aiosqlite
from fastapi import Request

from .application.services import (
    AccessPropagator, AuthService, FolderService, GroupService,
    PermissionResolver, PermissionService, TreeSynchronizer, UploadService,
)
from .domain import AccessDenied, Role, Unauthorized
from .infrastructure.repositories import (
    AsyncFolderRepository, AsyncGroupRepository, AsyncPermissionRepository,
    AsyncSessionRepository, AsyncUserRepository,
)


async def get_db(request: Request) -> AsyncIterator[aiosqlite.Connection]:
    """Borrow a pooled connection for the duration of the request."""
    pool = request.app.state.pool
    conn = await pool.acquire()
    try:
        yield conn
    finally:
        await pool.release(conn)


def get_current_user(request: Request) -> dict | None:
    """Get current user from request state."""
    return getattr(request.state, "user", None)


def require_user(request: Request) -> dict:
    """Require authenticated user, raise 401 if not authenticated."""
    user = get_current_user(request)
    if not user:
        raise Unauthorized("Not authenticated")
    return user


def require_admin(request: Request) -> dict:
    """Check if current user is admin. Raises 403 if not."""
    user = require_user(request)
    if user["role"] != Role.ADMIN.value:
        raise AccessDenied("Admin access required")
    return user


# === Service factories ===

def get_auth_service(db) -> AuthService:
    return AuthService(
        user_repository=AsyncUserRepository(db),
        session_repository=AsyncSessionRepository(db)
    )


def get_resolver(db) -> PermissionResolver:
    return PermissionResolver(
        user_repository=AsyncUserRepository(db),
        folder_repository=AsyncFolderRepository(db),
        permission_repository=AsyncPermissionRepository(db)
    )


def get_synchronizer(db, state) -> TreeSynchronizer:
    return TreeSynchronizer(
        folder_repository=AsyncFolderRepository(db),
        filesystem=state.tree,
        notifier=state.notifier,
        default_public=state.settings.default_folder_public,
        lock=state.sync_lock
    )


def get_access_propagator(db, state) -> AccessPropagator:
    return AccessPropagator(
        folder_repository=AsyncFolderRepository(db),
        notifier=state.notifier,
        chunk_size=state.settings.bulk_chunk_size
    )


def get_permission_service(db, state) -> PermissionService:
    return PermissionService(
        permission_repository=AsyncPermissionRepository(db),
        folder_repository=AsyncFolderRepository(db),
        user_repository=AsyncUserRepository(db),
        group_repository=AsyncGroupRepository(db),
        notifier=state.notifier
    )


def get_group_service(db, state) -> GroupService:
    return GroupService(
        group_repository=AsyncGroupRepository(db),
        user_repository=AsyncUserRepository(db),
        notifier=state.notifier
    )


def get_folder_service(db, state) -> FolderService:
    return FolderService(
        folder_repository=AsyncFolderRepository(db),
        permission_repository=AsyncPermissionRepository(db),
        resolver=get_resolver(db),
        synchronizer=get_synchronizer(db, state),
        filesystem=state.tree,
        notifier=state.notifier,
        page_size=state.settings.page_size
    )


def get_upload_service(db, state) -> UploadService:
    return UploadService(
        folder_service=get_folder_service(db, state),
        synchronizer=get_synchronizer(db, state),
        filesystem=state.tree,
        notifier=state.notifier
    )
