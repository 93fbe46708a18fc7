"""
Folder administration integration tests.

Verifies:
- Sync of storage directories into folder records
- Visibility updates, single and bulk
- ACL grants and revocations through the admin API
- Group deletion removing group grants
"""
from fastapi.testclient import TestClient


def folder_id(client: TestClient, path: str) -> str:
    folders = client.get("/api/admin/folders").json()["folders"]
    return next(f["id"] for f in folders if f["path"] == path)


class TestSync:

    def test_sync_registers_directories(self, admin_client: TestClient, settings):
        (settings.storage_root / "trips" / "2024").mkdir(parents=True)

        response = admin_client.post("/api/admin/sync")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "added": 2, "updated": 0, "removed": 0}
        paths = [f["path"] for f in admin_client.get("/api/admin/folders").json()["folders"]]
        assert paths == ["trips", "trips/2024"]

    def test_second_sync_changes_nothing(self, admin_client: TestClient, settings):
        (settings.storage_root / "trips").mkdir()
        admin_client.post("/api/admin/sync")

        assert admin_client.post("/api/admin/sync").json()["added"] == 0


class TestFolderAccess:

    def test_recursive_private(self, admin_client: TestClient, settings, accounts, login):
        (settings.storage_root / "trips" / "2024").mkdir(parents=True)
        admin_client.post("/api/admin/sync")
        trips = folder_id(admin_client, "trips")

        response = admin_client.put(
            f"/api/admin/folders/{trips}/access",
            json={"is_public": False, "allowed_users": [accounts["alice"]["id"]], "recursive": True}
        )

        assert response.status_code == 200
        assert response.json()["updated"] == 2
        folders = {f["path"]: f for f in admin_client.get("/api/admin/folders").json()["folders"]}
        assert folders["trips/2024"]["is_public"] is False
        assert folders["trips/2024"]["allowed_users"] == [accounts["alice"]["id"]]

        login(admin_client, "bob")
        assert admin_client.get("/api/gallery", params={"path": "trips/2024"}).status_code == 403
        login(admin_client, "alice")
        assert admin_client.get("/api/gallery", params={"path": "trips/2024"}).status_code == 200

    def test_bulk_public(self, admin_client: TestClient, settings):
        for name in ("a", "b", "c"):
            (settings.storage_root / name / "sub").mkdir(parents=True)
        admin_client.post("/api/admin/sync")
        ids = [folder_id(admin_client, name) for name in ("a", "b")]

        response = admin_client.post(
            "/api/admin/folders/bulk-public",
            json={"folder_ids": ids + ["missing"], "is_public": False, "recursive": True}
        )

        assert response.json() == {"status": "ok", "updated": 4, "folders": 2, "skipped": 1}
        folders = {f["path"]: f["is_public"] for f in admin_client.get("/api/admin/folders").json()["folders"]}
        assert folders == {"a": False, "a/sub": False, "b": False, "b/sub": False, "c": True, "c/sub": True}

    def test_unknown_folder_is_404(self, admin_client: TestClient):
        response = admin_client.put("/api/admin/folders/missing/access", json={"is_public": True})

        assert response.status_code == 404
        assert response.json()["status"] == "not_found"


class TestPermissions:

    def test_grant_and_revoke(self, admin_client: TestClient, settings, accounts, login):
        (settings.storage_root / "private").mkdir()
        admin_client.post("/api/admin/sync")
        private = folder_id(admin_client, "private")
        admin_client.put(f"/api/admin/folders/{private}/access", json={"is_public": False})
        bob = accounts["bob"]["id"]

        response = admin_client.put(
            f"/api/admin/folders/{private}/permissions",
            json={"principal_type": "user", "principal_id": bob, "access": "write"}
        )
        assert response.status_code == 200
        entries = admin_client.get(f"/api/admin/folders/{private}/permissions").json()["permissions"]
        assert [(e["principal_name"], e["access"]) for e in entries] == [("bob", "write")]

        response = admin_client.delete(f"/api/admin/folders/{private}/permissions/user/{bob}")
        assert response.json() == {"status": "ok", "removed": True}

        login(admin_client, "bob")
        assert admin_client.get("/api/gallery", params={"path": "private"}).status_code == 403

    def test_invalid_access_level_rejected(self, admin_client: TestClient, settings, accounts):
        (settings.storage_root / "private").mkdir()
        admin_client.post("/api/admin/sync")
        private = folder_id(admin_client, "private")

        response = admin_client.put(
            f"/api/admin/folders/{private}/permissions",
            json={"principal_type": "user", "principal_id": accounts["bob"]["id"], "access": "owner"}
        )

        assert response.status_code == 422

    def test_group_delete_removes_group_grants(self, admin_client: TestClient, settings, accounts, login):
        (settings.storage_root / "family").mkdir()
        admin_client.post("/api/admin/sync")
        family = folder_id(admin_client, "family")
        admin_client.put(f"/api/admin/folders/{family}/access", json={"is_public": False})
        group = admin_client.post("/api/admin/groups", json={"name": "family"}).json()["group"]
        admin_client.post(f"/api/admin/groups/{group['id']}/members/{accounts['alice']['id']}")
        admin_client.put(
            f"/api/admin/folders/{family}/permissions",
            json={"principal_type": "group", "principal_id": group["id"], "access": "read"}
        )

        assert admin_client.delete(f"/api/admin/groups/{group['id']}").status_code == 200

        assert admin_client.get(f"/api/admin/folders/{family}/permissions").json()["permissions"] == []
        login(admin_client, "alice")
        assert admin_client.get("/api/gallery", params={"path": "family"}).status_code == 403

    def test_duplicate_group_is_409(self, admin_client: TestClient):
        admin_client.post("/api/admin/groups", json={"name": "family"})

        response = admin_client.post("/api/admin/groups", json={"name": "family"})

        assert response.status_code == 409
        assert response.json()["status"] == "conflict"

    def test_users_listed_with_groups(self, admin_client: TestClient, accounts):
        group = admin_client.post("/api/admin/groups", json={"name": "editors"}).json()["group"]
        admin_client.put(
            f"/api/admin/users/{accounts['bob']['id']}/groups", json={"group_ids": [group["id"]]}
        )

        users = {u["username"]: u for u in admin_client.get("/api/admin/users").json()["users"]}

        assert users["bob"]["group_ids"] == [group["id"]]
        assert users["alice"]["group_ids"] == []
        assert "password_hash" not in users["bob"]


def test_delete_folder(admin_client: TestClient, settings):
    (settings.storage_root / "old" / "inner").mkdir(parents=True)
    admin_client.post("/api/admin/sync")

    response = admin_client.delete(f"/api/admin/folders/{folder_id(admin_client, 'old')}")

    assert response.json() == {"status": "ok", "removed": 2}
    assert not (settings.storage_root / "old").exists()
    assert admin_client.get("/api/admin/folders").json()["folders"] == []
