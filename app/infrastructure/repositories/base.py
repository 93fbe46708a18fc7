"""Base repository protocol and utilities.

This module defines the interface that all repositories must implement.
"""
from typing import Iterable, Iterator, Protocol, Sequence, TypeVar

import aiosqlite

T = TypeVar("T")

# Stays well below SQLite's host parameter limit
MAX_PARAMS_PER_QUERY = 500


class AsyncConnectionProtocol(Protocol):
    """Protocol for async database connection."""

    async def execute(self, sql: str, parameters: tuple = ...) -> aiosqlite.Cursor: ...
    async def executemany(self, sql: str, parameters: Iterable[tuple]) -> aiosqlite.Cursor: ...
    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of ``items`` with at most ``size`` elements."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


def placeholders(count: int) -> str:
    return ",".join("?" * count)


class AsyncRepository:
    """Async base repository class.

    Provides async database operations using aiosqlite. Write methods take a
    ``commit`` flag so a service can group several repository calls into one
    transaction and commit once at the end.

    Example:
        class AsyncUserRepository(AsyncRepository):
            async def get_by_id(self, user_id: int) -> dict | None:
                return await self._fetchone("SELECT * FROM users WHERE id = ?", (user_id,))
    """

    def __init__(self, connection: AsyncConnectionProtocol):
        """Initialize repository with async database connection.

        Args:
            connection: Async database connection (aiosqlite.Connection)
        """
        self._conn = connection

    async def _execute(self, sql: str, parameters: tuple = ()) -> aiosqlite.Cursor:
        """Execute SQL query with parameters asynchronously.

        Args:
            sql: SQL query string
            parameters: Query parameters (prevents SQL injection)

        Returns:
            aiosqlite.Cursor with results
        """
        return await self._conn.execute(sql, parameters)

    async def _execute_many(self, sql: str, parameters_list: list[tuple]) -> aiosqlite.Cursor:
        """Execute SQL query multiple times asynchronously."""
        return await self._conn.executemany(sql, parameters_list)

    async def _commit(self) -> None:
        """Commit current transaction asynchronously."""
        await self._conn.commit()

    async def _rollback(self) -> None:
        await self._conn.rollback()

    async def commit(self) -> None:
        """Commit writes staged with ``commit=False``."""
        await self._commit()

    async def rollback(self) -> None:
        await self._rollback()

    def _row_to_dict(self, row: aiosqlite.Row | None) -> dict | None:
        """Convert aiosqlite.Row to dictionary."""
        return dict(row) if row else None

    async def _fetchone(self, sql: str, parameters: tuple = ()) -> dict | None:
        """Fetch single row and return as dict.

        Args:
            sql: SQL query
            parameters: Query parameters

        Returns:
            Dictionary or None
        """
        cursor = await self._execute(sql, parameters)
        row = await cursor.fetchone()
        return self._row_to_dict(row)

    async def _fetchall(self, sql: str, parameters: tuple = ()) -> list[dict]:
        """Fetch all rows and return as list of dicts.

        Args:
            sql: SQL query
            parameters: Query parameters

        Returns:
            List of dictionaries
        """
        cursor = await self._execute(sql, parameters)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def _fetchall_in(self, sql: str, values: Sequence, prefix: tuple = ()) -> list[dict]:
        """Run ``sql`` once per chunk of ``values``.

        ``sql`` must contain a single ``{placeholders}`` marker for the IN list.
        """
        rows: list[dict] = []
        for chunk in chunked(list(values), MAX_PARAMS_PER_QUERY):
            rows.extend(await self._fetchall(
                sql.format(placeholders=placeholders(len(chunk))),
                prefix + tuple(chunk)
            ))
        return rows

    async def _execute_in(self, sql: str, values: Sequence, prefix: tuple = ()) -> int:
        """Chunked write counterpart of ``_fetchall_in``. Returns affected rows."""
        affected = 0
        for chunk in chunked(list(values), MAX_PARAMS_PER_QUERY):
            cursor = await self._execute(
                sql.format(placeholders=placeholders(len(chunk))),
                prefix + tuple(chunk)
            )
            affected += cursor.rowcount
        return affected
