"""Upload service - stores uploaded files under the storage root.

The byte transport is not handled here: the route hands over the complete
content. This service registers the containing folders, writes the file and
announces the change.
"""
import logging

from ...domain import join_path, normalize_path, validate_name
from ...infrastructure.events import ChangeNotifier, GALLERY_REFRESH, Scope
from ...infrastructure.storage import FilesystemTree
from .folder_service import FolderService, classify
from .tree_sync import TreeSynchronizer

logger = logging.getLogger(__name__)


class UploadService:
    """Service for handling file uploads.

    Responsibilities:
    - Name validation
    - Write check on the target folder
    - Folder records exist before the file lands
    - ``gallery:refresh`` after the write completes
    """

    def __init__(
        self,
        folder_service: FolderService,
        synchronizer: TreeSynchronizer,
        filesystem: FilesystemTree,
        notifier: ChangeNotifier | None = None
    ):
        self.folder_service = folder_service
        self.synchronizer = synchronizer
        self.fs = filesystem
        self.notifier = notifier

    async def store(
        self,
        user_id: int | None,
        folder_path: str,
        filename: str,
        content: bytes,
        room: str | None = None
    ) -> dict:
        """Store one uploaded file.

        Args:
            user_id: Uploading user
            folder_path: Target folder, created (and registered) if missing
            filename: Leaf file name
            content: Complete file content
            room: Notify only this room instead of everyone; must be the
                uploader's own user room, anything else is ignored

        Returns:
            Dict with upload result: {path, name, type, size}
        """
        folder_path = normalize_path(folder_path)
        filename = validate_name(filename)
        await self.folder_service.require_write_into(user_id, folder_path)

        await self.synchronizer.ensure_folder_path(folder_path, user_id)
        file_path = join_path(folder_path, filename)
        await self.fs.write_file(file_path, content)
        logger.info("Stored %r (%d bytes) for user %s", file_path, len(content), user_id)

        if self.notifier:
            await self.notifier.notify(
                GALLERY_REFRESH, self._refresh_scope(user_id, room), {"path": folder_path}
            )

        return {
            "path": file_path,
            "name": filename,
            "type": classify(filename),
            "size": len(content),
        }

    @staticmethod
    def _refresh_scope(user_id: int | None, room: str | None) -> Scope:
        """The uploader's own room when asked for, everyone otherwise."""
        if room and user_id is not None and room == Scope.user(user_id).room:
            return Scope.named(room)
        if room:
            logger.debug("Ignoring foreign room %r for user %s", room, user_id)
        return Scope.GLOBAL
