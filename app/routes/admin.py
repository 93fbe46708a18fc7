"""Admin routes - folder sync, visibility, ACL entries, groups and users."""
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from ..dependencies import (
    get_access_propagator, get_db, get_folder_service, get_group_service,
    get_permission_service, get_synchronizer, require_admin,
)
from ..domain import AccessLevel, PrincipalType
from ..infrastructure.repositories import AsyncFolderRepository, AsyncUserRepository

router = APIRouter(prefix="/api/admin")


class FolderAccessUpdate(BaseModel):
    is_public: bool
    allowed_users: list[int] = []
    recursive: bool = False


class BulkPublicUpdate(BaseModel):
    folder_ids: list[str]
    is_public: bool
    recursive: bool = False


class PermissionSet(BaseModel):
    principal_type: PrincipalType
    principal_id: int
    access: AccessLevel


class GroupCreate(BaseModel):
    name: str
    description: str | None = None


class UserGroupsUpdate(BaseModel):
    group_ids: list[int]


# === Folders ===

@router.post("/sync")
async def sync_folders(request: Request, db=Depends(get_db)):
    """Reconcile folder records with the storage directories."""
    user = require_admin(request)
    result = await get_synchronizer(db, request.app.state).sync(user["id"])
    return {"status": "ok", **result.to_dict()}


@router.get("/folders")
async def list_folders(request: Request, db=Depends(get_db)):
    require_admin(request)
    folders = await AsyncFolderRepository(db).list_all()
    return {"folders": [folder.to_dict() for folder in folders]}


@router.put("/folders/{folder_id}/access")
async def set_folder_access(request: Request, folder_id: str, data: FolderAccessUpdate, db=Depends(get_db)):
    """Set public flag and allow-list, optionally for the whole subtree."""
    require_admin(request)
    result = await get_access_propagator(db, request.app.state).set_folder_access(
        folder_id, data.is_public, data.allowed_users, data.recursive
    )
    return {"status": "ok", **result}


@router.post("/folders/bulk-public")
async def bulk_set_public(request: Request, data: BulkPublicUpdate, db=Depends(get_db)):
    require_admin(request)
    result = await get_access_propagator(db, request.app.state).bulk_set_public(
        data.folder_ids, data.is_public, data.recursive
    )
    return {"status": "ok", **result}


@router.delete("/folders/{folder_id}")
async def delete_folder(request: Request, folder_id: str, db=Depends(get_db)):
    """Delete a folder with its subtree, ACL entries and directory."""
    user = require_admin(request)
    removed = await get_folder_service(db, request.app.state).delete_folder(user["id"], folder_id)
    return {"status": "ok", "removed": removed}


# === ACL entries ===

@router.get("/folders/{folder_id}/permissions")
async def list_permissions(request: Request, folder_id: str, db=Depends(get_db)):
    require_admin(request)
    entries = await get_permission_service(db, request.app.state).list_permissions(folder_id)
    return {"permissions": entries}


@router.put("/folders/{folder_id}/permissions")
async def set_permission(request: Request, folder_id: str, data: PermissionSet, db=Depends(get_db)):
    """Grant or change the access level of a user or group."""
    require_admin(request)
    entry = await get_permission_service(db, request.app.state).set_permission(
        folder_id, data.principal_id, data.principal_type, data.access
    )
    return {"status": "ok", "permission": entry}


@router.delete("/folders/{folder_id}/permissions/{principal_type}/{principal_id}")
async def revoke_permission(
    request: Request,
    folder_id: str,
    principal_type: PrincipalType,
    principal_id: int,
    db=Depends(get_db)
):
    require_admin(request)
    removed = await get_permission_service(db, request.app.state).revoke_permission(
        folder_id, principal_id, principal_type
    )
    return {"status": "ok", "removed": removed}


# === Groups ===

@router.get("/groups")
async def list_groups(request: Request, db=Depends(get_db)):
    require_admin(request)
    return {"groups": await get_group_service(db, request.app.state).list_groups()}


@router.post("/groups")
async def create_group(request: Request, data: GroupCreate, db=Depends(get_db)):
    require_admin(request)
    group = await get_group_service(db, request.app.state).create_group(data.name, data.description)
    return {"status": "ok", "group": group}


@router.delete("/groups/{group_id}")
async def delete_group(request: Request, group_id: int, db=Depends(get_db)):
    """Delete a group, its memberships and its ACL entries."""
    require_admin(request)
    await get_group_service(db, request.app.state).delete_group(group_id)
    return {"status": "ok"}


@router.post("/groups/{group_id}/members/{user_id}")
async def add_group_member(request: Request, group_id: int, user_id: int, db=Depends(get_db)):
    require_admin(request)
    added = await get_group_service(db, request.app.state).add_member(group_id, user_id)
    return {"status": "ok", "added": added}


@router.delete("/groups/{group_id}/members/{user_id}")
async def remove_group_member(request: Request, group_id: int, user_id: int, db=Depends(get_db)):
    require_admin(request)
    removed = await get_group_service(db, request.app.state).remove_member(group_id, user_id)
    return {"status": "ok", "removed": removed}


# === Users ===

@router.get("/users")
async def list_users(request: Request, db=Depends(get_db)):
    require_admin(request)
    return {"users": await AsyncUserRepository(db).list_with_groups()}


@router.put("/users/{user_id}/groups")
async def set_user_groups(request: Request, user_id: int, data: UserGroupsUpdate, db=Depends(get_db)):
    """Replace the group memberships of a user."""
    require_admin(request)
    group_ids = await get_group_service(db, request.app.state).set_user_groups(user_id, data.group_ids)
    return {"status": "ok", "group_ids": group_ids}
