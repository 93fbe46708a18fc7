"""Permission repository - explicit ACL grants on folders.

An entry grants ``read``, ``write`` or ``admin`` on one folder to one user
or one group. There is at most one entry per (folder, principal): granting
again replaces the access level.
"""
from typing import Sequence

from ...domain import AccessLevel, PermissionEntry, PrincipalType
from .base import AsyncRepository


class AsyncPermissionRepository(AsyncRepository):
    """Async repository for folder ACL entries.

    Examples:
        >>> repo = AsyncPermissionRepository(conn)
        >>> await repo.upsert(folder_id, PrincipalType.USER, 7, AccessLevel.WRITE)
        >>> entries = await repo.list_for_folder(folder_id)
    """

    async def upsert(
        self,
        resource_id: str,
        principal_type: PrincipalType,
        principal_id: int,
        access: AccessLevel,
        commit: bool = True
    ) -> None:
        """Create or replace the entry for (folder, principal)."""
        await self._execute(
            """INSERT INTO permissions (resource_id, principal_type, principal_id, access)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(resource_id, principal_type, principal_id)
               DO UPDATE SET
                   access = excluded.access,
                   granted_at = CURRENT_TIMESTAMP""",
            (resource_id, principal_type.value, principal_id, access.value)
        )
        if commit:
            await self._commit()

    async def get(
        self,
        resource_id: str,
        principal_type: PrincipalType,
        principal_id: int
    ) -> PermissionEntry | None:
        row = await self._fetchone(
            """SELECT * FROM permissions
               WHERE resource_id = ? AND principal_type = ? AND principal_id = ?""",
            (resource_id, principal_type.value, principal_id)
        )
        return PermissionEntry.from_row(row) if row else None

    async def delete(
        self,
        resource_id: str,
        principal_type: PrincipalType,
        principal_id: int,
        commit: bool = True
    ) -> bool:
        """Remove the entry. Returns True if one existed."""
        cursor = await self._execute(
            """DELETE FROM permissions
               WHERE resource_id = ? AND principal_type = ? AND principal_id = ?""",
            (resource_id, principal_type.value, principal_id)
        )
        if commit:
            await self._commit()
        return cursor.rowcount > 0

    async def list_for_folder(self, resource_id: str) -> list[PermissionEntry]:
        rows = await self._fetchall(
            "SELECT * FROM permissions WHERE resource_id = ? ORDER BY principal_type, principal_id",
            (resource_id,)
        )
        return [PermissionEntry.from_row(row) for row in rows]

    async def list_for_folders(self, resource_ids: Sequence[str]) -> dict[str, list[PermissionEntry]]:
        """All entries for the given folders, grouped by folder id."""
        grouped: dict[str, list[PermissionEntry]] = {}
        rows = await self._fetchall_in(
            "SELECT * FROM permissions WHERE resource_id IN ({placeholders})", list(resource_ids)
        )
        for row in rows:
            entry = PermissionEntry.from_row(row)
            grouped.setdefault(entry.resource_id, []).append(entry)
        return grouped

    async def list_detailed(self, resource_id: str) -> list[dict]:
        """Entries for a folder with the principal's display name."""
        return await self._fetchall(
            """SELECT p.principal_type, p.principal_id, p.access, p.granted_at,
                      COALESCE(u.username, g.name) AS principal_name
               FROM permissions p
               LEFT JOIN users u ON p.principal_type = 'user' AND u.id = p.principal_id
               LEFT JOIN user_groups g ON p.principal_type = 'group' AND g.id = p.principal_id
               WHERE p.resource_id = ?
               ORDER BY p.principal_type, principal_name""",
            (resource_id,)
        )

    async def delete_for_group(self, group_id: int, commit: bool = True) -> int:
        cursor = await self._execute(
            "DELETE FROM permissions WHERE principal_type = 'group' AND principal_id = ?",
            (group_id,)
        )
        if commit:
            await self._commit()
        return cursor.rowcount

    async def delete_for_user(self, user_id: int, commit: bool = True) -> int:
        cursor = await self._execute(
            "DELETE FROM permissions WHERE principal_type = 'user' AND principal_id = ?",
            (user_id,)
        )
        if commit:
            await self._commit()
        return cursor.rowcount

    async def delete_for_folders(self, resource_ids: Sequence[str], commit: bool = True) -> int:
        removed = await self._execute_in(
            "DELETE FROM permissions WHERE resource_id IN ({placeholders})", list(resource_ids)
        )
        if commit:
            await self._commit()
        return removed
