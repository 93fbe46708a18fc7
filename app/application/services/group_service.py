"""Group service - user groups and memberships."""
import logging
import sqlite3
from typing import Iterable

from ...domain import Conflict, InvalidInput, NotFound
from ...infrastructure.events import ChangeNotifier, PERMISSION_UPDATE, REVOKE_ACCESS
from ...infrastructure.repositories import AsyncGroupRepository, AsyncUserRepository

logger = logging.getLogger(__name__)


class GroupService:
    """Service for group management.

    Every membership change can widen or narrow what a user sees, so the
    affected user rooms get a ``permission:update`` hint.
    """

    def __init__(
        self,
        group_repository: AsyncGroupRepository,
        user_repository: AsyncUserRepository,
        notifier: ChangeNotifier | None = None
    ):
        self.group_repo = group_repository
        self.user_repo = user_repository
        self.notifier = notifier

    async def create_group(self, name: str, description: str | None = None) -> dict:
        name = (name or "").strip()
        if not name:
            raise InvalidInput("Group name required")
        if await self.group_repo.get_by_name(name):
            raise Conflict(f"Group '{name}' already exists")
        try:
            group_id = await self.group_repo.create(name, description)
        except sqlite3.IntegrityError:
            raise Conflict(f"Group '{name}' already exists")
        logger.info("Created group %r (%s)", name, group_id)
        return {"id": group_id, "name": name, "description": description, "member_ids": []}

    async def list_groups(self) -> list[dict]:
        return await self.group_repo.list_all()

    async def delete_group(self, group_id: int) -> None:
        """Delete a group with its memberships and ACL entries.

        Raises:
            NotFound: If the group doesn't exist
        """
        await self._get_group(group_id)
        member_ids = await self.group_repo.get_member_ids(group_id)
        await self.group_repo.delete_cascade(group_id)
        logger.info("Deleted group %s (%d members)", group_id, len(member_ids))
        await self._notify(REVOKE_ACCESS, member_ids, {"groupId": group_id})

    async def add_member(self, group_id: int, user_id: int) -> bool:
        await self._get_group(group_id)
        await self._get_user(user_id)
        added = await self.group_repo.add_member(group_id, user_id)
        if added:
            await self._notify(PERMISSION_UPDATE, [user_id], {"groupId": group_id})
        return added

    async def remove_member(self, group_id: int, user_id: int) -> bool:
        await self._get_group(group_id)
        removed = await self.group_repo.remove_member(group_id, user_id)
        if removed:
            await self._notify(REVOKE_ACCESS, [user_id], {"groupId": group_id})
        return removed

    async def set_user_groups(self, user_id: int, group_ids: Iterable[int]) -> list[int]:
        """Replace the group memberships of a user.

        Raises:
            NotFound: If the user or any of the groups doesn't exist
        """
        await self._get_user(user_id)
        group_ids = sorted(set(group_ids))
        for group_id in group_ids:
            await self._get_group(group_id)
        await self.group_repo.set_user_groups(user_id, group_ids)
        await self._notify(PERMISSION_UPDATE, [user_id], {"groupIds": group_ids})
        return group_ids

    # Private helper methods

    async def _get_group(self, group_id: int) -> dict:
        group = await self.group_repo.get_by_id(group_id)
        if not group:
            raise NotFound(f"Group {group_id} not found")
        return group

    async def _get_user(self, user_id: int) -> dict:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFound(f"User {user_id} not found")
        return user

    async def _notify(self, event_type: str, user_ids: Iterable[int], payload: dict) -> None:
        if self.notifier:
            await self.notifier.notify_users(event_type, user_ids, payload)
