"""User repository - accounts, roles and password checks."""
import bcrypt

from ...domain import Principal, Role
from .base import AsyncConnectionProtocol, AsyncRepository
from .permission_repository import AsyncPermissionRepository


class AsyncUserRepository(AsyncRepository):
    """Async repository for user accounts.

    Examples:
        >>> repo = AsyncUserRepository(conn)
        >>> user_id = await repo.create("john", "password123")
        >>> principal = await repo.get_principal(user_id)
    """

    def __init__(self, connection: AsyncConnectionProtocol):
        super().__init__(connection)
        self.permissions = AsyncPermissionRepository(connection)

    async def get_by_id(self, user_id: int) -> dict | None:
        return await self._fetchone(
            "SELECT id, username, role, created_at FROM users WHERE id = ?",
            (user_id,)
        )

    async def get_by_username(self, username: str) -> dict | None:
        """Get user by username (case-insensitive), including the password hash."""
        return await self._fetchone(
            "SELECT * FROM users WHERE username = ?",
            (username.lower().strip(),)
        )

    async def create(self, username: str, password: str, role: Role = Role.USER) -> int:
        """Create new user.

        Args:
            username: Unique username
            password: Plain text password (will be hashed)
            role: 'user' or 'admin'

        Returns:
            New user ID
        """
        cursor = await self._execute(
            "INSERT INTO users (username, password_hash, role) VALUES (?, ?, ?)",
            (username.lower().strip(), self._hash_password(password), Role(role).value)
        )
        await self._commit()
        return cursor.lastrowid

    async def authenticate(self, username: str, password: str) -> dict | None:
        user = await self.get_by_username(username)
        if not user:
            return None
        if not self._verify_password(password, user["password_hash"]):
            return None
        return {"id": user["id"], "username": user["username"], "role": user["role"]}

    async def update_password(self, user_id: int, new_password: str) -> bool:
        cursor = await self._execute(
            "UPDATE users SET password_hash = ? WHERE id = ?",
            (self._hash_password(new_password), user_id)
        )
        await self._commit()
        return cursor.rowcount > 0

    async def set_role(self, user_id: int, role: Role) -> bool:
        cursor = await self._execute(
            "UPDATE users SET role = ? WHERE id = ?",
            (Role(role).value, user_id)
        )
        await self._commit()
        return cursor.rowcount > 0

    async def delete(self, user_id: int) -> bool:
        """Delete user with sessions, memberships, allow-list links and ACL entries."""
        await self._execute("DELETE FROM sessions WHERE user_id = ?", (user_id,))
        await self._execute("DELETE FROM group_members WHERE user_id = ?", (user_id,))
        await self._execute("DELETE FROM folder_allowed_users WHERE user_id = ?", (user_id,))
        await self.permissions.delete_for_user(user_id, commit=False)
        cursor = await self._execute("DELETE FROM users WHERE id = ?", (user_id,))
        await self._commit()
        return cursor.rowcount > 0

    async def list_all(self) -> list[dict]:
        return await self._fetchall(
            "SELECT id, username, role, created_at FROM users ORDER BY id"
        )

    async def list_with_groups(self) -> list[dict]:
        """All users with a ``group_ids`` list each."""
        users = await self.list_all()
        links = await self._fetchall("SELECT group_id, user_id FROM group_members")
        memberships: dict[int, list[int]] = {}
        for link in links:
            memberships.setdefault(link["user_id"], []).append(link["group_id"])
        for user in users:
            user["group_ids"] = sorted(memberships.get(user["id"], []))
        return users

    async def get_group_ids(self, user_id: int) -> frozenset[int]:
        rows = await self._fetchall(
            "SELECT group_id FROM group_members WHERE user_id = ?", (user_id,)
        )
        return frozenset(row["group_id"] for row in rows)

    async def get_principal(self, user_id: int | None) -> Principal | None:
        """Role and group memberships of a user, or None if unknown."""
        if user_id is None:
            return None
        user = await self.get_by_id(user_id)
        if not user:
            return None
        return Principal(
            id=user["id"],
            role=Role(user["role"]),
            group_ids=await self.get_group_ids(user_id)
        )

    # Private helper methods

    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    def _verify_password(self, password: str, hashed: str) -> bool:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
