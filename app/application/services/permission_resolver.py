"""Permission resolver - decides read/write/admin access to folders.

Rules, first match wins:

1. admin role: allow
2. no folder record: deny, except the root path ``""``
3. folder owner: allow
4. user in the folder's allow-list: allow
5. ``read`` on a public folder: allow
6. ACL entry for the user, or for one of the user's groups, whose access
   rank is at least the required rank: allow
7. deny

The resolver only reads.
"""
import logging
from dataclasses import dataclass
from typing import Sequence

from ...domain import (
    AccessDenied, AccessLevel, Folder, PermissionEntry, Principal, Unauthorized, normalize_path,
)
from ...infrastructure.repositories import (
    AsyncFolderRepository, AsyncPermissionRepository, AsyncUserRepository,
)

logger = logging.getLogger(__name__)


class FolderRef:
    """A folder to check: either a path or an already loaded record."""

    @staticmethod
    def of(value: "str | Folder | FolderRef | None") -> "PathRef | RecordRef":
        """Normalize ``value`` to a ``PathRef`` or ``RecordRef``.

        Raises:
            InvalidPath: If a path string tries to leave the storage root
        """
        if isinstance(value, (PathRef, RecordRef)):
            return value
        if isinstance(value, Folder):
            return RecordRef(value)
        return PathRef(normalize_path(value))


@dataclass(frozen=True)
class PathRef(FolderRef):
    path: str

    @property
    def is_root(self) -> bool:
        return self.path == ""


@dataclass(frozen=True)
class RecordRef(FolderRef):
    folder: Folder

    @property
    def is_root(self) -> bool:
        return self.folder.path == ""


def implicit_decision(
    principal: Principal,
    folder: Folder | None,
    level: AccessLevel,
    is_root: bool
) -> bool | None:
    """Rules 1-5. Returns None when the ACL has to decide."""
    if principal.is_admin:
        return True
    if folder is None:
        return is_root
    if folder.owner_id is not None and folder.owner_id == principal.id:
        return True
    if principal.id in folder.allowed_users:
        return True
    if level is AccessLevel.READ and folder.is_public:
        return True
    return None


def acl_decision(principal: Principal, entries: Sequence[PermissionEntry], level: AccessLevel) -> bool:
    """Rules 6-7."""
    return any(entry.grants(principal.id, principal.group_ids, level) for entry in entries)


class PermissionResolver:
    """Resolves folder access for a user.

    Examples:
        >>> resolver = PermissionResolver(user_repo, folder_repo, perm_repo)
        >>> await resolver.can_access(user_id, "vacation/2024", AccessLevel.WRITE)
        False
        >>> await resolver.filter_accessible(user_id, ["vacation", "private"])
        ['vacation']
    """

    def __init__(
        self,
        user_repository: AsyncUserRepository,
        folder_repository: AsyncFolderRepository,
        permission_repository: AsyncPermissionRepository
    ):
        self.user_repo = user_repository
        self.folder_repo = folder_repository
        self.perm_repo = permission_repository

    async def can_access(
        self,
        user_id: int | None,
        folder_ref: "str | Folder | FolderRef",
        level: AccessLevel | str = AccessLevel.READ
    ) -> bool:
        """Check access of ``user_id`` to a folder.

        Args:
            user_id: Acting user, None for no identity (always denied)
            folder_ref: Relative path, ``Folder`` or ``FolderRef``
            level: Required access level

        Returns:
            True if allowed

        Raises:
            InvalidPath: If a path tries to leave the storage root
        """
        ref = FolderRef.of(folder_ref)
        level = AccessLevel(level)

        principal = await self.user_repo.get_principal(user_id)
        if principal is None:
            return False
        if principal.is_admin:
            return True

        folder = await self.resolve(ref)
        decision = implicit_decision(principal, folder, level, ref.is_root)
        if decision is not None:
            return decision

        entries = await self.perm_repo.list_for_folder(folder.id)
        return acl_decision(principal, entries, level)

    async def require_access(
        self,
        user_id: int | None,
        folder_ref: "str | Folder | FolderRef",
        level: AccessLevel | str = AccessLevel.READ
    ) -> None:
        """Like ``can_access`` but raises instead of returning False.

        Raises:
            Unauthorized: If there is no identity
            AccessDenied: If the user lacks ``level`` on the folder
        """
        if user_id is None:
            raise Unauthorized("Login required")
        ref = FolderRef.of(folder_ref)
        if not await self.can_access(user_id, ref, level):
            path = ref.path if isinstance(ref, PathRef) else ref.folder.path
            logger.debug("Denied %s on %r for user %s", AccessLevel(level).value, path, user_id)
            raise AccessDenied(f"No {AccessLevel(level).value} access to '{path}'")

    async def filter_accessible(self, user_id: int | None, paths: Sequence[str]) -> list[str]:
        """Keep the paths the user may read, in input order.

        Folder records and ACL rows are loaded once for the whole batch.
        Paths without a folder record are dropped, except for admins.
        """
        normalized = [normalize_path(path) for path in paths]
        principal = await self.user_repo.get_principal(user_id)
        if principal is None or not paths:
            return []
        if principal.is_admin:
            return list(paths)

        folders = await self.folder_repo.get_by_paths(normalized)
        undecided: dict[str, bool | None] = {}
        for path, folder in folders.items():
            undecided[path] = implicit_decision(principal, folder, AccessLevel.READ, False)

        acl_ids = [folders[path].id for path, decision in undecided.items() if decision is None]
        entries = await self.perm_repo.list_for_folders(acl_ids) if acl_ids else {}

        accessible = []
        for original, path in zip(paths, normalized):
            folder = folders.get(path)
            if folder is None:
                continue
            decision = undecided[path]
            if decision is None:
                decision = acl_decision(principal, entries.get(folder.id, ()), AccessLevel.READ)
            if decision:
                accessible.append(original)
        return accessible

    async def resolve(self, ref: "PathRef | RecordRef") -> Folder | None:
        if isinstance(ref, RecordRef):
            return ref.folder
        return await self.folder_repo.get_by_path(ref.path)
