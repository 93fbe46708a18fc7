"""Tree synchronizer - reconciles folder records with the storage directories.

The walk is iterative: a stack of ``(path, folder_id)`` pairs and three
accumulators (rows to insert, parent moves, paths found). Writes are applied
in batches and committed once at the end.
"""
import asyncio
import logging
import uuid

from ...domain import Conflict, Folder, StorageUnavailable, SyncResult, is_descendant_path, join_path
from ...infrastructure.events import ChangeNotifier, GALLERY_REFRESH, Scope
from ...infrastructure.repositories import AsyncFolderRepository
from ...infrastructure.storage import FilesystemTree, StorageError

logger = logging.getLogger(__name__)


class TreeSynchronizer:
    """Keeps ``folders`` aligned with the directories under the storage root.

    Examples:
        >>> syncer = TreeSynchronizer(folder_repo, tree, notifier)
        >>> await syncer.sync(actor_id=1)
        SyncResult(added=3, updated=0, removed=0)
    """

    def __init__(
        self,
        folder_repository: AsyncFolderRepository,
        filesystem: FilesystemTree,
        notifier: ChangeNotifier | None = None,
        default_public: bool = True,
        lock: asyncio.Lock | None = None
    ):
        self.folder_repo = folder_repository
        self.fs = filesystem
        self.notifier = notifier
        self.default_public = default_public
        self._lock = lock

    async def sync(self, actor_id: int | None) -> SyncResult:
        """Walk the storage root and reconcile folder records.

        New directories get a record owned by ``actor_id``; records whose
        parent changed are re-linked; records whose directory is gone are
        deleted. Records below a directory that could not be read are left
        alone in this pass.

        Raises:
            StorageUnavailable: If the root cannot be read (nothing is written)
            Conflict: If another sync holds the lock
        """
        if self._lock is None:
            return await self._sync(actor_id)
        if self._lock.locked():
            raise Conflict("A sync is already running")
        async with self._lock:
            return await self._sync(actor_id)

    async def _sync(self, actor_id: int | None) -> SyncResult:
        await self.fs.check_root()
        known = await self.folder_repo.path_index()

        to_insert: list[tuple] = []
        to_reparent: list[tuple[str, str | None]] = []
        found: set[str] = set()
        unreadable: list[str] = []

        stack: list[tuple[str, str | None]] = [("", None)]
        while stack:
            path, folder_id = stack.pop()
            try:
                entries = await self.fs.list_entries(path)
            except StorageError as e:
                if path == "":
                    raise StorageUnavailable(f"Storage root not readable: {e}")
                logger.warning("Skipping unreadable directory %r: %s", path, e)
                unreadable.append(path)
                continue

            for entry in entries:
                if not entry.is_directory:
                    continue
                child_path = join_path(path, entry.name)
                found.add(child_path)
                record = known.get(child_path)
                if record is None:
                    child_id = str(uuid.uuid4())
                    to_insert.append(
                        (child_id, entry.name, child_path, folder_id, actor_id, self.default_public)
                    )
                else:
                    child_id = record["id"]
                    if record["parent_id"] != folder_id:
                        to_reparent.append((child_id, folder_id))
                stack.append((child_path, child_id))

        stale = [
            record["id"] for path, record in known.items()
            if path and path not in found
            and not any(is_descendant_path(path, skipped) for skipped in unreadable)
        ]

        try:
            added = await self.folder_repo.create_many(to_insert, commit=False)
            updated = await self.folder_repo.reparent_many(to_reparent, commit=False)
            removed = await self.folder_repo.delete_by_ids(stale, commit=False)
            await self.folder_repo.commit()
        except Exception:
            await self.folder_repo.rollback()
            raise

        result = SyncResult(added=added, updated=updated, removed=removed)
        logger.info(
            "Sync finished: added=%d updated=%d removed=%d (skipped %d unreadable)",
            result.added, result.updated, result.removed, len(unreadable)
        )
        if result.changed and self.notifier:
            await self.notifier.notify(GALLERY_REFRESH, Scope.GLOBAL, result.to_dict())
        return result

    async def ensure_folder_path(self, path: str, owner_id: int | None) -> Folder | None:
        """Create any missing records along ``path``, one segment at a time.

        Called before content is written into ``path`` so the container is
        registered first. Returns the leaf folder, or None for the root.
        """
        if not path:
            return None

        parent: Folder | None = None
        current = ""
        created = 0
        try:
            for segment in path.split("/"):
                current = join_path(current, segment)
                folder = await self.folder_repo.get_by_path(current)
                if folder is None:
                    # OR IGNORE: a concurrent upload may register the same path first
                    created += await self.folder_repo.create_many(
                        [(str(uuid.uuid4()), segment, current, parent.id if parent else None,
                          owner_id, self.default_public)],
                        commit=False
                    )
                    folder = await self.folder_repo.get_by_path(current)
                parent = folder
            await self.folder_repo.commit()
        except Exception:
            await self.folder_repo.rollback()
            raise

        if created:
            logger.info("Registered %d folder record(s) for %r", created, path)
        return parent
