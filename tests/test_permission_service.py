"""Tests for PermissionService grants and revocations."""
import pytest

from app.application.services import PermissionService
from app.domain import AccessLevel, NotFound, PrincipalType
from app.infrastructure.events import (
    PERMISSION_UPDATE,
    REVOKE_ACCESS,
    ChangeNotifier,
    EventBroker,
    Scope,
)


class FailingBroker(EventBroker):
    """Broker whose publish always fails."""

    async def publish(self, event):
        raise ConnectionError("bus unreachable")

    def subscribe(self, scope):
        raise NotImplementedError

    def discard(self, subscription):
        pass

    async def close(self):
        pass


class TestSetPermission:

    @pytest.mark.asyncio
    async def test_write_grant_allows_write_not_admin(
        self, permission_service, resolver, users, make_folder
    ):
        folder = await make_folder("docs", owner_id=users["admin"], is_public=False)

        entry = await permission_service.set_permission(folder.id, users["bob"], "user", "write")

        assert entry == {
            "resource_id": folder.id,
            "principal_type": "user",
            "principal_id": users["bob"],
            "access": "write",
        }
        assert await resolver.can_access(users["bob"], "docs", AccessLevel.WRITE)
        assert not await resolver.can_access(users["bob"], "docs", AccessLevel.ADMIN)

    @pytest.mark.asyncio
    async def test_regrant_replaces_entry(self, permission_service, perm_repo, users, make_folder):
        folder = await make_folder("docs", is_public=False)

        await permission_service.set_permission(folder.id, users["bob"], PrincipalType.USER, AccessLevel.READ)
        await permission_service.set_permission(folder.id, users["bob"], PrincipalType.USER, AccessLevel.ADMIN)

        entries = await perm_repo.list_for_folder(folder.id)
        assert len(entries) == 1
        assert entries[0].access is AccessLevel.ADMIN

    @pytest.mark.asyncio
    async def test_grant_notifies_user_room(self, permission_service, notifier, users, make_folder):
        folder = await make_folder("docs", is_public=False)
        bob = notifier.subscribe(Scope.user(users["bob"]))
        alice = notifier.subscribe(Scope.user(users["alice"]))

        await permission_service.set_permission(folder.id, users["bob"], "user", "read")

        event = await bob.next_event(timeout=0.1)
        assert event.event_type == PERMISSION_UPDATE
        assert event.payload == {"folderPath": "docs", "folderId": folder.id}
        assert await alice.next_event(timeout=0.05) is None

    @pytest.mark.asyncio
    async def test_unknown_folder_or_principal(self, permission_service, perm_repo, users, make_folder):
        folder = await make_folder("docs", is_public=False)

        with pytest.raises(NotFound):
            await permission_service.set_permission("missing", users["bob"], "user", "read")
        with pytest.raises(NotFound):
            await permission_service.set_permission(folder.id, 9999, "user", "read")
        with pytest.raises(NotFound):
            await permission_service.set_permission(folder.id, 9999, "group", "read")

        assert await perm_repo.list_for_folder(folder.id) == []

    @pytest.mark.asyncio
    async def test_invalid_access_value(self, permission_service, users, make_folder):
        folder = await make_folder("docs", is_public=False)

        with pytest.raises(ValueError):
            await permission_service.set_permission(folder.id, users["bob"], "user", "owner")


class TestRevokePermission:

    @pytest.mark.asyncio
    async def test_revoke_removes_access(self, permission_service, resolver, users, make_folder):
        folder = await make_folder("docs", is_public=False)
        await permission_service.set_permission(folder.id, users["bob"], "user", "read")

        assert await permission_service.revoke_permission(folder.id, users["bob"], "user")

        assert not await resolver.can_access(users["bob"], "docs", AccessLevel.READ)

    @pytest.mark.asyncio
    async def test_revoke_missing_entry_is_false(self, permission_service, notifier, users, make_folder):
        folder = await make_folder("docs", is_public=False)
        bob = notifier.subscribe(Scope.user(users["bob"]))

        assert not await permission_service.revoke_permission(folder.id, users["bob"], "user")
        assert await bob.next_event(timeout=0.05) is None

    @pytest.mark.asyncio
    async def test_user_revoke_goes_to_user_room(self, permission_service, notifier, users, make_folder):
        folder = await make_folder("docs", is_public=False)
        await permission_service.set_permission(folder.id, users["bob"], "user", "read")
        bob = notifier.subscribe(Scope.user(users["bob"]))

        await permission_service.revoke_permission(folder.id, users["bob"], "user")

        event = await bob.next_event(timeout=0.1)
        assert event.event_type == REVOKE_ACCESS
        assert event.payload == {"folderId": folder.id}

    @pytest.mark.asyncio
    async def test_group_revoke_reaches_every_member(
        self, permission_service, group_repo, notifier, users, make_folder
    ):
        folder = await make_folder("family", is_public=False)
        group_id = await group_repo.create("family")
        await group_repo.add_member(group_id, users["alice"])
        await group_repo.add_member(group_id, users["bob"])
        await permission_service.set_permission(folder.id, group_id, "group", "read")
        alice = notifier.subscribe(Scope.user(users["alice"]))
        bob = notifier.subscribe(Scope.user(users["bob"]))
        admin = notifier.subscribe(Scope.user(users["admin"]))

        await permission_service.revoke_permission(folder.id, group_id, "group")

        for subscription in (alice, bob):
            event = await subscription.next_event(timeout=0.1)
            assert event.event_type == REVOKE_ACCESS
        assert await admin.next_event(timeout=0.05) is None

    @pytest.mark.asyncio
    async def test_unknown_folder(self, permission_service, users):
        with pytest.raises(NotFound):
            await permission_service.revoke_permission("missing", users["bob"], "user")


@pytest.mark.asyncio
async def test_failed_notification_does_not_fail_grant(
    perm_repo, folder_repo, user_repo, group_repo, resolver, users, make_folder
):
    folder = await make_folder("docs", is_public=False)
    service = PermissionService(
        perm_repo, folder_repo, user_repo, group_repo, ChangeNotifier(FailingBroker())
    )

    await service.set_permission(folder.id, users["bob"], "user", "read")
    assert await resolver.can_access(users["bob"], "docs", AccessLevel.READ)

    assert await service.revoke_permission(folder.id, users["bob"], "user")
    assert not await resolver.can_access(users["bob"], "docs", AccessLevel.READ)


@pytest.mark.asyncio
async def test_list_permissions_includes_names(permission_service, group_repo, users, make_folder):
    folder = await make_folder("docs", is_public=False)
    group_id = await group_repo.create("editors")
    await permission_service.set_permission(folder.id, users["bob"], "user", "read")
    await permission_service.set_permission(folder.id, group_id, "group", "write")

    entries = await permission_service.list_permissions(folder.id)

    assert [(e["principal_type"], e["principal_name"], e["access"]) for e in entries] == [
        ("group", "editors", "write"),
        ("user", "bob", "read"),
    ]
