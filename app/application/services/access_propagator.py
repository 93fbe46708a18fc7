"""Access propagator - applies public/allow-list changes to folders and subtrees."""
import logging
from typing import Iterable, Sequence

from ...domain import NotFound
from ...infrastructure.events import ChangeNotifier, PERMISSION_UPDATE, Scope
from ...infrastructure.repositories import AsyncFolderRepository

logger = logging.getLogger(__name__)


class AccessPropagator:
    """Service for folder visibility changes.

    Recursive updates reach every folder whose path starts with
    ``folder.path + "/"`` (literal comparison). Bulk recursive updates run
    in chunks of ``chunk_size`` root folders, one combined UPDATE per chunk.
    """

    def __init__(
        self,
        folder_repository: AsyncFolderRepository,
        notifier: ChangeNotifier | None = None,
        chunk_size: int = AsyncFolderRepository.DEFAULT_CHUNK_SIZE
    ):
        self.folder_repo = folder_repository
        self.notifier = notifier
        self.chunk_size = chunk_size

    async def set_folder_access(
        self,
        folder_id: str,
        is_public: bool,
        allowed_users: Iterable[int] = (),
        recursive: bool = False
    ) -> dict:
        """Set visibility and allow-list of one folder.

        Args:
            folder_id: Target folder
            is_public: New public flag
            allowed_users: User ids replacing the allow-list
            recursive: Apply both to every descendant as well

        Returns:
            Dict with the folder path and the number of folders updated

        Raises:
            NotFound: If the folder doesn't exist (nothing is written)
        """
        folder = await self.folder_repo.get_by_id(folder_id)
        if not folder:
            raise NotFound(f"Folder {folder_id} not found")

        allowed_users = sorted(set(int(user_id) for user_id in allowed_users))
        try:
            if recursive:
                updated = await self.folder_repo.update_public_with_descendants(
                    [folder], is_public, chunk_size=self.chunk_size, commit=False
                )
                target_ids = [folder.id] + await self.folder_repo.descendant_ids([folder.path])
            else:
                updated = await self.folder_repo.update_public([folder.id], is_public, commit=False)
                target_ids = [folder.id]
            await self.folder_repo.set_allowed_users(target_ids, allowed_users, commit=False)
            await self.folder_repo.commit()
        except Exception:
            await self.folder_repo.rollback()
            raise

        logger.info(
            "Folder %r set public=%s allowed=%s recursive=%s (%d folders)",
            folder.path, is_public, allowed_users, recursive, updated
        )
        await self._notify({
            "folderPath": folder.path,
            "folderId": folder.id,
            "isRecursive": recursive,
            "isBulk": False,
        })
        return {"folderId": folder.id, "folderPath": folder.path, "updated": updated}

    async def bulk_set_public(
        self,
        folder_ids: Sequence[str],
        is_public: bool,
        recursive: bool = False
    ) -> dict:
        """Set the public flag on many folders at once.

        Unknown ids are skipped.

        Raises:
            NotFound: If none of ``folder_ids`` exists (nothing is written)
        """
        roots = await self.folder_repo.get_by_ids(list(dict.fromkeys(folder_ids)))
        if not roots:
            raise NotFound("None of the folders exist")

        try:
            if recursive:
                updated = await self.folder_repo.update_public_with_descendants(
                    roots, is_public, chunk_size=self.chunk_size, commit=False
                )
            else:
                updated = await self.folder_repo.update_public(
                    [folder.id for folder in roots], is_public, commit=False
                )
            await self.folder_repo.commit()
        except Exception:
            await self.folder_repo.rollback()
            raise

        skipped = len(set(folder_ids)) - len(roots)
        logger.info(
            "Bulk public=%s on %d folders recursive=%s (%d updated, %d unknown skipped)",
            is_public, len(roots), recursive, updated, skipped
        )
        # Several roots: folderPath falls back to the storage root
        paths = [folder.path for folder in roots]
        await self._notify({
            "folderPath": paths[0] if len(paths) == 1 else "",
            "folderPaths": paths,
            "folderIds": [folder.id for folder in roots],
            "isRecursive": recursive,
            "isBulk": True,
        })
        return {"updated": updated, "folders": len(roots), "skipped": skipped}

    async def _notify(self, payload: dict) -> None:
        if self.notifier:
            await self.notifier.notify(PERMISSION_UPDATE, Scope.GLOBAL, payload)
