"""Storage abstraction layer.

The gallery reads and writes the plain directory hierarchy under the
storage root through a ``FilesystemTree``.
"""
from .base import (
    FilesystemTree,
    DirEntry,
    FileStat,
    StorageError,
    EntryNotFoundError,
    DirectoryReadError,
    WriteError,
    DeleteError,
)
from .local_storage import LocalFilesystemTree

__all__ = [
    "FilesystemTree",
    "LocalFilesystemTree",
    "DirEntry",
    "FileStat",
    "StorageError",
    "EntryNotFoundError",
    "DirectoryReadError",
    "WriteError",
    "DeleteError",
]
