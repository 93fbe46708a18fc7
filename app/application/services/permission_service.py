"""Permission service - grants and revokes folder ACL entries.

This service encapsulates business logic for explicit access grants:
validating the folder and principal, upserting or deleting the entry and
telling the affected users' sessions to re-resolve.
"""
import logging

from ...domain import AccessLevel, Folder, NotFound, PrincipalType
from ...infrastructure.events import ChangeNotifier, PERMISSION_UPDATE, REVOKE_ACCESS
from ...infrastructure.repositories import (
    AsyncFolderRepository,
    AsyncGroupRepository,
    AsyncPermissionRepository,
    AsyncUserRepository,
)

logger = logging.getLogger(__name__)


class PermissionService:
    """Service for folder ACL management.

    Responsibilities:
    - Grant (upsert) and revoke ACL entries
    - List entries of a folder
    - Notify users whose access changed; for groups every member is notified
    """

    def __init__(
        self,
        permission_repository: AsyncPermissionRepository,
        folder_repository: AsyncFolderRepository,
        user_repository: AsyncUserRepository,
        group_repository: AsyncGroupRepository,
        notifier: ChangeNotifier | None = None
    ):
        self.perm_repo = permission_repository
        self.folder_repo = folder_repository
        self.user_repo = user_repository
        self.group_repo = group_repository
        self.notifier = notifier

    async def set_permission(
        self,
        folder_id: str,
        principal_id: int,
        principal_type: PrincipalType | str,
        access: AccessLevel | str
    ) -> dict:
        """Grant ``access`` on a folder to a user or group.

        An existing entry for the same principal is replaced, never duplicated.

        Returns:
            The entry as a dict

        Raises:
            NotFound: If the folder or principal doesn't exist
        """
        principal_type = PrincipalType(principal_type)
        access = AccessLevel(access)
        folder = await self._get_folder(folder_id)
        await self._check_principal(principal_type, principal_id)

        await self.perm_repo.upsert(folder.id, principal_type, principal_id, access)
        logger.info(
            "Granted %s on %r to %s %s", access.value, folder.path, principal_type.value, principal_id
        )

        await self._notify_principal(
            PERMISSION_UPDATE, principal_type, principal_id,
            {"folderPath": folder.path, "folderId": folder.id}
        )
        return {
            "resource_id": folder.id,
            "principal_type": principal_type.value,
            "principal_id": principal_id,
            "access": access.value,
        }

    async def revoke_permission(
        self,
        folder_id: str,
        principal_id: int,
        principal_type: PrincipalType | str
    ) -> bool:
        """Delete the entry of a principal on a folder.

        Sends ``revoke:access`` to the user, or to every member of the group.

        Returns:
            True if an entry was removed

        Raises:
            NotFound: If the folder doesn't exist
        """
        principal_type = PrincipalType(principal_type)
        folder = await self._get_folder(folder_id)

        removed = await self.perm_repo.delete(folder.id, principal_type, principal_id)
        if not removed:
            return False

        logger.info("Revoked access on %r from %s %s", folder.path, principal_type.value, principal_id)
        await self._notify_principal(
            REVOKE_ACCESS, principal_type, principal_id, {"folderId": folder.id}
        )
        return True

    async def list_permissions(self, folder_id: str) -> list[dict]:
        folder = await self._get_folder(folder_id)
        return await self.perm_repo.list_detailed(folder.id)

    # Private helper methods

    async def _get_folder(self, folder_id: str) -> Folder:
        folder = await self.folder_repo.get_by_id(folder_id)
        if not folder:
            raise NotFound(f"Folder {folder_id} not found")
        return folder

    async def _check_principal(self, principal_type: PrincipalType, principal_id: int) -> None:
        if principal_type is PrincipalType.USER:
            exists = await self.user_repo.get_by_id(principal_id)
        else:
            exists = await self.group_repo.get_by_id(principal_id)
        if not exists:
            raise NotFound(f"{principal_type.value.capitalize()} {principal_id} not found")

    async def _notify_principal(
        self,
        event_type: str,
        principal_type: PrincipalType,
        principal_id: int,
        payload: dict
    ) -> None:
        if not self.notifier:
            return
        if principal_type is PrincipalType.USER:
            user_ids = [principal_id]
        else:
            user_ids = await self.group_repo.get_member_ids(principal_id)
        await self.notifier.notify_users(event_type, user_ids, payload)
