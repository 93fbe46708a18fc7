"""Tests for AccessPropagator."""
import pytest

from app.domain import NotFound
from app.infrastructure.events import PERMISSION_UPDATE, Scope


@pytest.fixture
def tree_of(make_folder):
    async def _build(*paths, is_public=True):
        return {path: await make_folder(path, is_public=is_public) for path in paths}
    return _build


async def public_flags(folder_repo) -> dict:
    return {f.path: f.is_public for f in await folder_repo.list_all()}


class TestSetFolderAccess:

    @pytest.mark.asyncio
    async def test_recursive_reaches_whole_subtree(self, propagator, folder_repo, tree_of):
        folders = await tree_of("root", "root/child1", "root/child2", "root/child1/deep")

        result = await propagator.set_folder_access(folders["root"].id, False, [], recursive=True)

        assert result["updated"] == 4
        assert await public_flags(folder_repo) == {
            "root": False, "root/child1": False, "root/child1/deep": False, "root/child2": False,
        }

    @pytest.mark.asyncio
    async def test_non_recursive_touches_only_the_folder(self, propagator, folder_repo, tree_of):
        folders = await tree_of("root", "root/child1", "root/child2")

        await propagator.set_folder_access(folders["root"].id, False, [], recursive=False)

        assert await public_flags(folder_repo) == {
            "root": False, "root/child1": True, "root/child2": True,
        }

    @pytest.mark.asyncio
    async def test_prefix_is_matched_literally(self, propagator, folder_repo, tree_of):
        folders = await tree_of("a_b", "a_b/x", "aXb", "aXb/y", "a_bc", "A_B")

        await propagator.set_folder_access(folders["a_b"].id, False, [], recursive=True)

        assert await public_flags(folder_repo) == {
            "A_B": True, "aXb": True, "aXb/y": True, "a_b": False, "a_b/x": False, "a_bc": True,
        }

    @pytest.mark.asyncio
    async def test_percent_in_name_is_not_a_wildcard(self, propagator, folder_repo, tree_of):
        folders = await tree_of("50%", "50%/in", "50abc", "50abc/out")

        await propagator.set_folder_access(folders["50%"].id, False, [], recursive=True)

        flags = await public_flags(folder_repo)
        assert flags["50%/in"] is False
        assert flags["50abc"] is True
        assert flags["50abc/out"] is True

    @pytest.mark.asyncio
    async def test_allow_list_replaced_recursively(self, propagator, folder_repo, tree_of, users):
        folders = await tree_of("root", "root/child")
        await folder_repo.set_allowed_users([folders["root"].id], [users["admin"]])

        await propagator.set_folder_access(
            folders["root"].id, False, [users["alice"], users["bob"]], recursive=True
        )

        for path in ("root", "root/child"):
            folder = await folder_repo.get_by_path(path)
            assert folder.allowed_users == {users["alice"], users["bob"]}

    @pytest.mark.asyncio
    async def test_unknown_folder_writes_nothing(self, propagator, folder_repo, tree_of):
        await tree_of("root", "root/child")

        with pytest.raises(NotFound):
            await propagator.set_folder_access("missing-id", False, [], recursive=True)

        assert set((await public_flags(folder_repo)).values()) == {True}

    @pytest.mark.asyncio
    async def test_notifies_with_folder_details(self, propagator, notifier, tree_of, users):
        folders = await tree_of("root")
        subscription = notifier.subscribe(Scope.user(users["bob"]))

        await propagator.set_folder_access(folders["root"].id, False, [], recursive=True)

        event = await subscription.next_event(timeout=0.1)
        assert event.event_type == PERMISSION_UPDATE
        assert event.payload == {
            "folderPath": "root", "folderId": folders["root"].id, "isRecursive": True, "isBulk": False,
        }


class TestBulkSetPublic:

    @pytest.mark.asyncio
    async def test_recursive_across_several_chunks(self, propagator, folder_repo, tree_of):
        roots = [f"r{i}" for i in range(5)]
        folders = await tree_of(*roots, *[f"{r}/sub" for r in roots], "other", "other/sub")

        result = await propagator.bulk_set_public([folders[r].id for r in roots], False, recursive=True)

        assert result["updated"] == 10
        flags = await public_flags(folder_repo)
        assert all(flags[r] is False and flags[f"{r}/sub"] is False for r in roots)
        assert flags["other"] is True
        assert flags["other/sub"] is True

    @pytest.mark.asyncio
    async def test_non_recursive_bulk(self, propagator, folder_repo, tree_of):
        folders = await tree_of("a", "a/sub", "b")

        await propagator.bulk_set_public([folders["a"].id, folders["b"].id], False)

        assert await public_flags(folder_repo) == {"a": False, "a/sub": True, "b": False}

    @pytest.mark.asyncio
    async def test_unknown_ids_skipped(self, propagator, tree_of):
        folders = await tree_of("a")

        result = await propagator.bulk_set_public([folders["a"].id, "missing"], False)

        assert result == {"updated": 1, "folders": 1, "skipped": 1}

    @pytest.mark.asyncio
    async def test_all_unknown_is_not_found(self, propagator):
        with pytest.raises(NotFound):
            await propagator.bulk_set_public(["missing-1", "missing-2"], False, recursive=True)

    @pytest.mark.asyncio
    async def test_bulk_event_flags(self, propagator, notifier, tree_of):
        folders = await tree_of("a", "b")
        subscription = notifier.subscribe(Scope.GLOBAL)

        await propagator.bulk_set_public([folders["a"].id, folders["b"].id], True, recursive=True)

        event = await subscription.next_event(timeout=0.1)
        assert event.payload["isBulk"] is True
        assert event.payload["isRecursive"] is True
        assert event.payload["folderPaths"] == ["a", "b"]
