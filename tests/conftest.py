"""Test configuration and fixtures.

This module provides isolated test environments:
- Temporary SQLite database with the full schema
- Temporary storage root
- Repositories and services wired the way the app wires them
"""
from pathlib import Path
from typing import Dict

import pytest
import pytest_asyncio

from app.application.services import (
    AccessPropagator,
    FolderService,
    GroupService,
    PermissionResolver,
    PermissionService,
    TreeSynchronizer,
    UploadService,
)
from app.domain import Role, parent_path
from app.infrastructure.database import connect, init_schema
from app.infrastructure.events import ChangeNotifier, InMemoryBroker
from app.infrastructure.repositories import (
    AsyncFolderRepository,
    AsyncGroupRepository,
    AsyncPermissionRepository,
    AsyncSessionRepository,
    AsyncUserRepository,
)
from app.infrastructure.storage import LocalFilesystemTree


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    root = tmp_path / "storage"
    root.mkdir()
    return root


@pytest_asyncio.fixture
async def db(tmp_path: Path):
    """Fresh database connection with schema for each test."""
    conn = await connect(tmp_path / "test.db")
    await init_schema(conn)
    yield conn
    await conn.close()


# =============================================================================
# Repositories
# =============================================================================

@pytest.fixture
def user_repo(db) -> AsyncUserRepository:
    return AsyncUserRepository(db)


@pytest.fixture
def folder_repo(db) -> AsyncFolderRepository:
    return AsyncFolderRepository(db)


@pytest.fixture
def perm_repo(db) -> AsyncPermissionRepository:
    return AsyncPermissionRepository(db)


@pytest.fixture
def group_repo(db) -> AsyncGroupRepository:
    return AsyncGroupRepository(db)


@pytest.fixture
def session_repo(db) -> AsyncSessionRepository:
    return AsyncSessionRepository(db)


@pytest_asyncio.fixture
async def users(user_repo) -> Dict[str, int]:
    """One admin and two regular users: {name: id}."""
    return {
        "admin": await user_repo.create("admin", "adminpass", Role.ADMIN),
        "alice": await user_repo.create("alice", "alicepass"),
        "bob": await user_repo.create("bob", "bobpass"),
    }


@pytest.fixture
def make_folder(folder_repo):
    """Insert a folder record below an already registered parent.

    Usage:
        folder = await make_folder("vacation/2024", owner_id=1, is_public=False)
    """
    async def _make(path: str, owner_id: int | None = None, is_public: bool = True):
        parent = await folder_repo.get_by_path(parent_path(path)) if "/" in path else None
        folder_id = await folder_repo.create(
            path.rpartition("/")[2], path, parent.id if parent else None, owner_id, is_public
        )
        return await folder_repo.get_by_id(folder_id)
    return _make


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier(InMemoryBroker(queue_size=100))


@pytest.fixture
def tree(storage_root) -> LocalFilesystemTree:
    return LocalFilesystemTree(storage_root)


@pytest.fixture
def resolver(user_repo, folder_repo, perm_repo) -> PermissionResolver:
    return PermissionResolver(user_repo, folder_repo, perm_repo)


@pytest.fixture
def synchronizer(folder_repo, tree, notifier) -> TreeSynchronizer:
    return TreeSynchronizer(folder_repo, tree, notifier, default_public=True)


@pytest.fixture
def propagator(folder_repo, notifier) -> AccessPropagator:
    return AccessPropagator(folder_repo, notifier, chunk_size=2)


@pytest.fixture
def permission_service(perm_repo, folder_repo, user_repo, group_repo, notifier) -> PermissionService:
    return PermissionService(perm_repo, folder_repo, user_repo, group_repo, notifier)


@pytest.fixture
def group_service(group_repo, user_repo, notifier) -> GroupService:
    return GroupService(group_repo, user_repo, notifier)


@pytest.fixture
def folder_service(folder_repo, perm_repo, resolver, synchronizer, tree, notifier) -> FolderService:
    return FolderService(folder_repo, perm_repo, resolver, synchronizer, tree, notifier, page_size=2)


@pytest.fixture
def upload_service(folder_service, synchronizer, tree, notifier) -> UploadService:
    return UploadService(folder_service, synchronizer, tree, notifier)
