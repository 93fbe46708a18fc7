"""Folder repository - the database mirror of the storage directory tree.

One row per directory under the storage root, keyed by a stable id and
unique by relative ``path``. Subtree operations match on the path prefix
``path + "/"`` compared as a literal string, never as a LIKE/GLOB pattern:
folder names are user supplied and may contain ``%``, ``_``, ``*`` or ``[``.
"""
import uuid
from typing import Iterable, Sequence

from ...domain import Folder
from .base import AsyncRepository, chunked, placeholders


def prefix_clause(path: str) -> tuple[str, tuple]:
    """SQL condition matching strict descendants of ``path``."""
    if path == "":
        return "path != ''", ()
    prefix = path + "/"
    return "substr(path, 1, ?) = ?", (len(prefix), prefix)


class AsyncFolderRepository(AsyncRepository):
    """Async repository for folder records.

    Examples:
        >>> repo = AsyncFolderRepository(conn)
        >>> folder_id = await repo.create("2024", "vacation/2024", parent_id, owner_id)
        >>> folder = await repo.get_by_path("vacation/2024")
    """

    # Roots per combined UPDATE; each root contributes one id and two prefix params
    DEFAULT_CHUNK_SIZE = 30

    # ------------------------------------------------------------------ reads

    async def get_by_id(self, folder_id: str) -> Folder | None:
        row = await self._fetchone("SELECT * FROM folders WHERE id = ?", (folder_id,))
        if not row:
            return None
        return (await self._with_allowed_users([row]))[0]

    async def get_by_ids(self, folder_ids: Sequence[str]) -> list[Folder]:
        rows = await self._fetchall_in(
            "SELECT * FROM folders WHERE id IN ({placeholders}) ORDER BY path", folder_ids
        )
        return await self._with_allowed_users(rows)

    async def get_by_path(self, path: str) -> Folder | None:
        row = await self._fetchone("SELECT * FROM folders WHERE path = ?", (path,))
        if not row:
            return None
        return (await self._with_allowed_users([row]))[0]

    async def get_by_paths(self, paths: Sequence[str]) -> dict[str, Folder]:
        """Load every folder whose path is in ``paths``, keyed by path."""
        rows = await self._fetchall_in(
            "SELECT * FROM folders WHERE path IN ({placeholders})", list(set(paths))
        )
        return {folder.path: folder for folder in await self._with_allowed_users(rows)}

    async def list_all(self) -> list[Folder]:
        rows = await self._fetchall("SELECT * FROM folders ORDER BY path")
        return await self._with_allowed_users(rows)

    async def list_children(self, parent_id: str | None) -> list[Folder]:
        if parent_id is None:
            rows = await self._fetchall(
                "SELECT * FROM folders WHERE parent_id IS NULL ORDER BY name"
            )
        else:
            rows = await self._fetchall(
                "SELECT * FROM folders WHERE parent_id = ? ORDER BY name", (parent_id,)
            )
        return await self._with_allowed_users(rows)

    async def path_index(self) -> dict[str, dict]:
        """Lightweight ``path -> {id, parent_id}`` map of every record."""
        rows = await self._fetchall("SELECT id, path, parent_id FROM folders")
        return {row["path"]: row for row in rows}

    async def get_subtree(self, path: str) -> list[Folder]:
        """The folder at ``path`` (if any) followed by all its descendants."""
        clause, params = prefix_clause(path)
        rows = await self._fetchall(
            f"SELECT * FROM folders WHERE path = ? OR {clause} ORDER BY path",
            (path,) + params
        )
        return await self._with_allowed_users(rows)

    async def descendant_ids(self, paths: Sequence[str]) -> list[str]:
        """Ids of strict descendants of any of ``paths``."""
        ids: list[str] = []
        for chunk in chunked(list(paths), self.DEFAULT_CHUNK_SIZE):
            clauses, params = self._prefix_conditions(chunk)
            rows = await self._fetchall(f"SELECT id FROM folders WHERE {clauses}", params)
            ids.extend(row["id"] for row in rows)
        return ids

    # ----------------------------------------------------------------- writes

    async def create(
        self,
        name: str,
        path: str,
        parent_id: str | None,
        owner_id: int | None,
        is_public: bool = True,
        folder_id: str | None = None,
        commit: bool = True
    ) -> str:
        """Insert a folder record.

        Returns:
            The new folder id
        """
        folder_id = folder_id or str(uuid.uuid4())
        await self._execute(
            """INSERT INTO folders (id, name, path, parent_id, owner_id, is_public)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (folder_id, name, path, parent_id, owner_id, int(is_public))
        )
        if commit:
            await self._commit()
        return folder_id

    async def create_many(self, rows: list[tuple], commit: bool = True) -> int:
        """Batch insert of ``(id, name, path, parent_id, owner_id, is_public)`` tuples.

        Rows whose path is already registered are ignored.
        """
        if not rows:
            return 0
        cursor = await self._execute_many(
            """INSERT OR IGNORE INTO folders (id, name, path, parent_id, owner_id, is_public)
               VALUES (?, ?, ?, ?, ?, ?)""",
            [(fid, name, path, parent, owner, int(public))
             for fid, name, path, parent, owner, public in rows]
        )
        if commit:
            await self._commit()
        return cursor.rowcount

    async def reparent_many(self, moves: list[tuple[str, str | None]], commit: bool = True) -> int:
        """Batch parent reassignment from ``(folder_id, new_parent_id)`` pairs."""
        if not moves:
            return 0
        cursor = await self._execute_many(
            "UPDATE folders SET parent_id = ? WHERE id = ?",
            [(parent_id, folder_id) for folder_id, parent_id in moves]
        )
        if commit:
            await self._commit()
        return cursor.rowcount

    async def delete_by_ids(self, folder_ids: Sequence[str], commit: bool = True) -> int:
        """Delete folder records and their allow-lists. ACL rows are left alone."""
        if not folder_ids:
            return 0
        await self._execute_in(
            "DELETE FROM folder_allowed_users WHERE folder_id IN ({placeholders})", folder_ids
        )
        removed = await self._execute_in(
            "DELETE FROM folders WHERE id IN ({placeholders})", folder_ids
        )
        if commit:
            await self._commit()
        return removed

    async def set_allowed_users(
        self,
        folder_ids: Sequence[str],
        user_ids: Iterable[int],
        commit: bool = True
    ) -> None:
        """Replace the allow-list of every folder in ``folder_ids``."""
        user_ids = sorted(set(user_ids))
        await self._execute_in(
            "DELETE FROM folder_allowed_users WHERE folder_id IN ({placeholders})", folder_ids
        )
        if user_ids:
            await self._execute_many(
                "INSERT INTO folder_allowed_users (folder_id, user_id) VALUES (?, ?)",
                [(folder_id, user_id) for folder_id in folder_ids for user_id in user_ids]
            )
        if commit:
            await self._commit()

    async def update_public(
        self,
        folder_ids: Sequence[str],
        is_public: bool,
        commit: bool = True
    ) -> int:
        updated = await self._execute_in(
            "UPDATE folders SET is_public = ? WHERE id IN ({placeholders})",
            folder_ids,
            prefix=(int(is_public),)
        )
        if commit:
            await self._commit()
        return updated

    async def update_public_with_descendants(
        self,
        roots: Sequence[Folder],
        is_public: bool,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        commit: bool = True
    ) -> int:
        """Set ``is_public`` on ``roots`` and all their descendants.

        Roots are processed ``chunk_size`` at a time; each chunk is a single
        ``UPDATE ... WHERE id IN (...) OR <prefix> OR <prefix> ...``.
        """
        updated = 0
        for chunk in chunked(list(roots), chunk_size):
            prefixes, prefix_params = self._prefix_conditions([f.path for f in chunk])
            ids = [f.id for f in chunk]
            cursor = await self._execute(
                f"""UPDATE folders SET is_public = ?
                    WHERE id IN ({placeholders(len(ids))}) OR {prefixes}""",
                (int(is_public), *ids, *prefix_params)
            )
            updated += cursor.rowcount
        if commit:
            await self._commit()
        return updated

    # --------------------------------------------------------------- helpers

    def _prefix_conditions(self, paths: Sequence[str]) -> tuple[str, tuple]:
        clauses = []
        params: tuple = ()
        for path in paths:
            clause, clause_params = prefix_clause(path)
            clauses.append(f"({clause})")
            params += clause_params
        return " OR ".join(clauses) or "0", params

    async def _with_allowed_users(self, rows: list[dict]) -> list[Folder]:
        """Turn rows into ``Folder`` objects with one allow-list query."""
        if not rows:
            return []
        allowed: dict[str, set[int]] = {}
        links = await self._fetchall_in(
            "SELECT folder_id, user_id FROM folder_allowed_users WHERE folder_id IN ({placeholders})",
            [row["id"] for row in rows]
        )
        for link in links:
            allowed.setdefault(link["folder_id"], set()).add(link["user_id"])
        return [Folder.from_row(row, allowed.get(row["id"], ())) for row in rows]
