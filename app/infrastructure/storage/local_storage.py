"""Local filesystem storage implementation."""
import asyncio
import logging
import shutil
from pathlib import Path

import aiofiles
import aiofiles.os

from ...domain import InvalidPath, StorageUnavailable
from .base import (
    FilesystemTree,
    DirEntry,
    FileStat,
    EntryNotFoundError,
    DirectoryReadError,
    WriteError,
    DeleteError,
)

logger = logging.getLogger(__name__)


class LocalFilesystemTree(FilesystemTree):
    """Directory tree rooted at a local path.

    Example:
        >>> tree = LocalFilesystemTree(Path("/srv/gallery"))
        >>> await tree.list_entries("vacation")
        [DirEntry(name='2024', is_directory=True), DirEntry(name='beach.jpg', is_directory=False)]
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def absolute_path(self, path: str) -> Path:
        """Resolve ``path`` under the root.

        Raises:
            InvalidPath: If the resolved location escapes the root (symlinks included)
        """
        root = self.root.resolve()
        target = (root / path).resolve() if path else root
        if target != root and root not in target.parents:
            raise InvalidPath(f"Path escapes storage root: {path!r}")
        return target

    async def check_root(self) -> None:
        if not await aiofiles.os.path.isdir(self.root):
            raise StorageUnavailable(f"Storage root not found: {self.root}")
        try:
            await aiofiles.os.listdir(self.root)
        except OSError as e:
            raise StorageUnavailable(f"Storage root not readable: {e}")

    async def list_entries(self, path: str) -> list[DirEntry]:
        directory = self.absolute_path(path)
        try:
            names = await aiofiles.os.listdir(directory)
        except FileNotFoundError:
            raise EntryNotFoundError(f"Directory not found: {path!r}")
        except OSError as e:
            raise DirectoryReadError(f"Failed to list {path!r}: {e}")

        # Symlinked directories are listed as plain entries and never descended
        entries = []
        for name in sorted(names):
            child = directory / name
            is_dir = not await aiofiles.os.path.islink(child) and await aiofiles.os.path.isdir(child)
            entries.append(DirEntry(name=name, is_directory=is_dir))
        return entries

    async def exists(self, path: str) -> bool:
        return await aiofiles.os.path.exists(self.absolute_path(path))

    async def is_directory(self, path: str) -> bool:
        return await aiofiles.os.path.isdir(self.absolute_path(path))

    async def stat(self, path: str) -> FileStat:
        try:
            st = await aiofiles.os.stat(self.absolute_path(path))
        except FileNotFoundError:
            raise EntryNotFoundError(f"File not found: {path!r}")
        return FileStat(
            size=st.st_size,
            mtime_seconds=st.st_mtime,
            birthtime_seconds=getattr(st, "st_birthtime", st.st_ctime),
        )

    async def make_directory(self, path: str) -> None:
        try:
            await aiofiles.os.makedirs(self.absolute_path(path), exist_ok=True)
        except OSError as e:
            raise WriteError(f"Failed to create directory {path!r}: {e}")

    async def write_file(self, path: str, content: bytes) -> None:
        target = self.absolute_path(path)
        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(content)
        except OSError as e:
            raise WriteError(f"Failed to write {path!r}: {e}")

    async def remove_file(self, path: str) -> None:
        try:
            await aiofiles.os.remove(self.absolute_path(path))
        except FileNotFoundError:
            raise EntryNotFoundError(f"File not found: {path!r}")
        except OSError as e:
            raise DeleteError(f"Failed to delete {path!r}: {e}")

    async def remove_tree(self, path: str) -> None:
        if not path:
            raise InvalidPath("Refusing to remove the storage root")
        target = self.absolute_path(path)
        try:
            await asyncio.to_thread(shutil.rmtree, target)
        except FileNotFoundError:
            logger.debug("Directory already gone: %s", path)
        except OSError as e:
            raise DeleteError(f"Failed to delete {path!r}: {e}")
