"""Abstract storage interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class EntryNotFoundError(StorageError):
    """File or directory not found in storage."""
    pass


class DirectoryReadError(StorageError):
    """Directory exists but could not be listed."""
    pass


class WriteError(StorageError):
    """Failed to write a file or create a directory."""
    pass


class DeleteError(StorageError):
    """Failed to delete file or directory."""
    pass


@dataclass(frozen=True)
class DirEntry:
    name: str
    is_directory: bool


@dataclass(frozen=True)
class FileStat:
    """File metadata; ``birthtime_seconds`` falls back to ctime where unsupported."""
    size: int
    mtime_seconds: float
    birthtime_seconds: float


class FilesystemTree(ABC):
    """Abstract view of the storage root.

    All paths are relative, slash-separated and already normalized; the root
    is ``""``.

    Implementations:
    - LocalFilesystemTree: directories and files on the local disk
    """

    @abstractmethod
    async def check_root(self) -> None:
        """Raise ``StorageUnavailable`` if the root cannot be listed."""
        pass

    @abstractmethod
    async def list_entries(self, path: str) -> list[DirEntry]:
        """List a directory, sorted by name.

        Raises:
            EntryNotFoundError: If the directory does not exist
            DirectoryReadError: If it cannot be read
        """
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def is_directory(self, path: str) -> bool:
        pass

    @abstractmethod
    async def stat(self, path: str) -> FileStat:
        pass

    @abstractmethod
    async def make_directory(self, path: str) -> None:
        """Create a directory and any missing parents."""
        pass

    @abstractmethod
    async def write_file(self, path: str, content: bytes) -> None:
        pass

    @abstractmethod
    async def remove_file(self, path: str) -> None:
        pass

    @abstractmethod
    async def remove_tree(self, path: str) -> None:
        pass

    @abstractmethod
    def absolute_path(self, path: str) -> Path:
        """Absolute location of ``path``, guaranteed inside the root."""
        pass
