"""Group repository - named sets of users.

Membership is stored once, in ``group_members``, so the user side
("groups of a user") and the group side ("members of a group") can never
disagree.
"""
from typing import Iterable

from .base import AsyncConnectionProtocol, AsyncRepository
from .permission_repository import AsyncPermissionRepository


class AsyncGroupRepository(AsyncRepository):
    """Async repository for groups and their members."""

    def __init__(self, connection: AsyncConnectionProtocol):
        super().__init__(connection)
        self.permissions = AsyncPermissionRepository(connection)

    async def create(self, name: str, description: str | None = None) -> int:
        cursor = await self._execute(
            "INSERT INTO user_groups (name, description) VALUES (?, ?)",
            (name.strip(), description)
        )
        await self._commit()
        return cursor.lastrowid

    async def get_by_id(self, group_id: int) -> dict | None:
        return await self._fetchone("SELECT * FROM user_groups WHERE id = ?", (group_id,))

    async def get_by_name(self, name: str) -> dict | None:
        return await self._fetchone("SELECT * FROM user_groups WHERE name = ?", (name.strip(),))

    async def list_all(self) -> list[dict]:
        """All groups with their member ids."""
        groups = await self._fetchall("SELECT * FROM user_groups ORDER BY name")
        links = await self._fetchall("SELECT group_id, user_id FROM group_members")
        members: dict[int, list[int]] = {}
        for link in links:
            members.setdefault(link["group_id"], []).append(link["user_id"])
        for group in groups:
            group["member_ids"] = sorted(members.get(group["id"], []))
        return groups

    async def get_member_ids(self, group_id: int) -> list[int]:
        rows = await self._fetchall(
            "SELECT user_id FROM group_members WHERE group_id = ? ORDER BY user_id",
            (group_id,)
        )
        return [row["user_id"] for row in rows]

    async def add_member(self, group_id: int, user_id: int) -> bool:
        """Returns True if the user was not a member before."""
        cursor = await self._execute(
            "INSERT OR IGNORE INTO group_members (group_id, user_id) VALUES (?, ?)",
            (group_id, user_id)
        )
        await self._commit()
        return cursor.rowcount > 0

    async def remove_member(self, group_id: int, user_id: int) -> bool:
        cursor = await self._execute(
            "DELETE FROM group_members WHERE group_id = ? AND user_id = ?",
            (group_id, user_id)
        )
        await self._commit()
        return cursor.rowcount > 0

    async def set_user_groups(self, user_id: int, group_ids: Iterable[int]) -> None:
        """Replace every membership of ``user_id`` in one transaction."""
        await self._execute("DELETE FROM group_members WHERE user_id = ?", (user_id,))
        await self._execute_many(
            "INSERT OR IGNORE INTO group_members (group_id, user_id) VALUES (?, ?)",
            [(group_id, user_id) for group_id in set(group_ids)]
        )
        await self._commit()

    async def delete_cascade(self, group_id: int) -> bool:
        """Delete a group, its ACL entries and its memberships atomically.

        ACL rows go first and everything commits together, so no reader
        ever sees the group gone while one of its grants survives.
        """
        try:
            await self.permissions.delete_for_group(group_id, commit=False)
            await self._execute("DELETE FROM group_members WHERE group_id = ?", (group_id,))
            cursor = await self._execute("DELETE FROM user_groups WHERE id = ?", (group_id,))
        except Exception:
            await self._rollback()
            raise
        await self._commit()
        return cursor.rowcount > 0
