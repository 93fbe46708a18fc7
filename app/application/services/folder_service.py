"""Folder service - browsing and managing content under the storage root.

Every operation normalizes its path first, checks access through the
resolver, and only then touches the database or the filesystem.
"""
import logging
from pathlib import Path

from ...config import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, TEXT_EXTENSIONS, PAGE_SIZE
from ...domain import (
    AccessDenied, AccessLevel, InvalidPath, NotFound, join_path, normalize_path, parent_path, validate_name,
)
from ...infrastructure.events import ChangeNotifier, GALLERY_REFRESH, PERMISSION_UPDATE, Scope
from ...infrastructure.repositories import AsyncFolderRepository, AsyncPermissionRepository
from ...infrastructure.storage import EntryNotFoundError, FilesystemTree
from .permission_resolver import PermissionResolver, RecordRef
from .tree_sync import TreeSynchronizer

logger = logging.getLogger(__name__)


def classify(filename: str) -> str | None:
    """Content type of a file by extension: image, video, text or None."""
    ext = Path(filename).suffix.lower()
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in VIDEO_EXTENSIONS:
        return "video"
    if ext in TEXT_EXTENSIONS:
        return "text"
    return None


class FolderService:
    """Service for folder contents.

    Responsibilities:
    - Paginated listing with per-folder visibility filtering
    - Folder creation (records before directories)
    - Explicit folder delete, cascading to ACL entries
    - File access and deletion
    """

    def __init__(
        self,
        folder_repository: AsyncFolderRepository,
        permission_repository: AsyncPermissionRepository,
        resolver: PermissionResolver,
        synchronizer: TreeSynchronizer,
        filesystem: FilesystemTree,
        notifier: ChangeNotifier | None = None,
        page_size: int = PAGE_SIZE
    ):
        self.folder_repo = folder_repository
        self.perm_repo = permission_repository
        self.resolver = resolver
        self.synchronizer = synchronizer
        self.fs = filesystem
        self.notifier = notifier
        self.page_size = page_size

    async def list_contents(self, user_id: int | None, path: str = "", page: int = 1) -> dict:
        """List sub-folders and content files of ``path``.

        Sub-folders the user can't read are left out. Files are sorted by
        creation time, newest first, and paginated.

        Returns:
            Dict: {path, folders, files, page, hasMore, totalFiles}
        """
        path = normalize_path(path)
        page = max(1, int(page))
        await self.resolver.require_access(user_id, path, AccessLevel.READ)

        if not await self.fs.is_directory(path):
            raise NotFound(f"Folder '{path}' not found")
        try:
            entries = await self.fs.list_entries(path)
        except EntryNotFoundError:
            raise NotFound(f"Folder '{path}' not found")

        folder_paths = [join_path(path, e.name) for e in entries if e.is_directory]
        visible = await self.resolver.filter_accessible(user_id, folder_paths)

        files = []
        for entry in entries:
            if entry.is_directory:
                continue
            kind = classify(entry.name)
            if kind is None:
                continue
            file_path = join_path(path, entry.name)
            try:
                stat = await self.fs.stat(file_path)
            except (EntryNotFoundError, InvalidPath) as e:
                # Dangling links and links out of the root
                logger.debug("Skipping unreadable entry %r: %s", file_path, e)
                continue
            files.append({
                "name": entry.name,
                "path": file_path,
                "type": kind,
                "size": stat.size,
                "created": stat.birthtime_seconds,
                "modified": stat.mtime_seconds,
            })
        files.sort(key=lambda f: (-f["created"], f["name"]))

        start = (page - 1) * self.page_size
        end = start + self.page_size
        return {
            "path": path,
            "folders": [{"name": p.rpartition("/")[2], "path": p} for p in visible],
            "files": files[start:end],
            "page": page,
            "hasMore": end < len(files),
            "totalFiles": len(files),
        }

    async def require_write_into(self, user_id: int | None, path: str) -> None:
        """Write check for creating content at ``path``, which may not exist yet.

        The check runs against the deepest registered folder on the path
        (the root when there is none). A directory that exists on disk but
        has no record yet is off limits to non-admins until synced.
        """
        current = path
        while current:
            folder = await self.folder_repo.get_by_path(current)
            if folder:
                await self.resolver.require_access(user_id, RecordRef(folder), AccessLevel.WRITE)
                return
            if await self.fs.exists(current) and not await self._is_admin(user_id):
                raise AccessDenied(f"Folder '{current}' is not registered yet")
            current = parent_path(current)
        await self.resolver.require_access(user_id, "", AccessLevel.WRITE)

    async def create_folder(self, user_id: int | None, parent: str, name: str) -> dict:
        """Create a folder; its records are registered before the directory."""
        parent = normalize_path(parent)
        path = join_path(parent, validate_name(name))
        await self.require_write_into(user_id, path)

        folder = await self.synchronizer.ensure_folder_path(path, user_id)
        await self.fs.make_directory(path)
        logger.info("Created folder %r for user %s", path, user_id)

        await self._notify(GALLERY_REFRESH, {"path": parent})
        return folder.to_dict()

    async def delete_folder(self, user_id: int | None, folder_id: str) -> int:
        """Delete a folder, its descendants, their ACL entries and the directory.

        Returns:
            Number of folder records removed

        Raises:
            NotFound: If the folder doesn't exist
            AccessDenied: Without ``admin`` access on the folder
        """
        folder = await self.folder_repo.get_by_id(folder_id)
        if not folder:
            raise NotFound(f"Folder {folder_id} not found")
        await self.resolver.require_access(user_id, RecordRef(folder), AccessLevel.ADMIN)

        subtree_ids = [f.id for f in await self.folder_repo.get_subtree(folder.path)]
        try:
            await self.perm_repo.delete_for_folders(subtree_ids, commit=False)
            removed = await self.folder_repo.delete_by_ids(subtree_ids, commit=False)
            await self.folder_repo.commit()
        except Exception:
            await self.folder_repo.rollback()
            raise

        await self.fs.remove_tree(folder.path)
        logger.info("Deleted folder %r (%d records)", folder.path, removed)

        await self._notify(GALLERY_REFRESH, {"path": parent_path(folder.path)})
        await self._notify(PERMISSION_UPDATE, {"folderPath": folder.path, "folderId": folder.id})
        return removed

    async def open_file(self, user_id: int | None, path: str) -> Path:
        """Absolute location of a readable content file."""
        path = normalize_path(path)
        await self.resolver.require_access(user_id, parent_path(path), AccessLevel.READ)
        if not path or not await self.fs.exists(path) or await self.fs.is_directory(path):
            raise NotFound(f"File '{path}' not found")
        return self.fs.absolute_path(path)

    async def delete_file(self, user_id: int | None, path: str) -> None:
        path = normalize_path(path)
        folder_path = parent_path(path)
        await self.resolver.require_access(user_id, folder_path, AccessLevel.WRITE)
        if not path or await self.fs.is_directory(path):
            raise NotFound(f"File '{path}' not found")
        try:
            await self.fs.remove_file(path)
        except EntryNotFoundError:
            raise NotFound(f"File '{path}' not found")
        logger.info("Deleted file %r for user %s", path, user_id)
        await self._notify(GALLERY_REFRESH, {"path": folder_path})

    # Private helper methods

    async def _is_admin(self, user_id: int | None) -> bool:
        principal = await self.resolver.user_repo.get_principal(user_id)
        return principal is not None and principal.is_admin

    async def _notify(self, event_type: str, payload: dict) -> None:
        if self.notifier:
            await self.notifier.notify(event_type, Scope.GLOBAL, payload)
