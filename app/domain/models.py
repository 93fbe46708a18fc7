"""Domain types shared by repositories and services."""
from dataclasses import dataclass, field
from enum import Enum


class AccessLevel(str, Enum):
    """Access levels, ordered: admin includes write includes read."""
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def satisfies(self, required: "AccessLevel") -> bool:
        return self.rank >= required.rank


_RANKS = {AccessLevel.READ: 1, AccessLevel.WRITE: 2, AccessLevel.ADMIN: 3}


class PrincipalType(str, Enum):
    USER = "user"
    GROUP = "group"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Folder:
    """Database mirror of one directory under the storage root."""
    id: str
    name: str
    path: str
    parent_id: str | None
    owner_id: int | None
    is_public: bool
    allowed_users: frozenset[int] = field(default_factory=frozenset)

    @classmethod
    def from_row(cls, row: dict, allowed_users=()) -> "Folder":
        return cls(
            id=row["id"],
            name=row["name"],
            path=row["path"],
            parent_id=row["parent_id"],
            owner_id=row["owner_id"],
            is_public=bool(row["is_public"]),
            allowed_users=frozenset(allowed_users),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "parent_id": self.parent_id,
            "owner_id": self.owner_id,
            "is_public": self.is_public,
            "allowed_users": sorted(self.allowed_users),
        }


@dataclass(frozen=True)
class PermissionEntry:
    resource_id: str
    principal_type: PrincipalType
    principal_id: int
    access: AccessLevel

    @classmethod
    def from_row(cls, row: dict) -> "PermissionEntry":
        return cls(
            resource_id=row["resource_id"],
            principal_type=PrincipalType(row["principal_type"]),
            principal_id=row["principal_id"],
            access=AccessLevel(row["access"]),
        )

    def grants(self, user_id: int, group_ids: frozenset[int], required: AccessLevel) -> bool:
        if not self.access.satisfies(required):
            return False
        if self.principal_type is PrincipalType.USER:
            return self.principal_id == user_id
        return self.principal_id in group_ids


@dataclass(frozen=True)
class Principal:
    """A user as seen by the resolver: role plus group memberships."""
    id: int
    role: Role
    group_ids: frozenset[int] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass(frozen=True)
class SyncResult:
    added: int = 0
    updated: int = 0
    removed: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.added or self.updated or self.removed)

    def to_dict(self) -> dict:
        return {"added": self.added, "updated": self.updated, "removed": self.removed}
