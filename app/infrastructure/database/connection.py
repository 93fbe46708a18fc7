"""Async database connection management.

Provides async database connectivity using aiosqlite.
"""
import asyncio
import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

# Folder rows mirror directories and are deleted explicitly, so there are no
# foreign key cascades: every delete path in the repositories is spelled out.
SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'user' CHECK(role IN ('user', 'admin')),
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id TEXT PRIMARY KEY,
        user_id INTEGER NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        expires_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_groups (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        description TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS group_members (
        group_id INTEGER NOT NULL,
        user_id INTEGER NOT NULL,
        PRIMARY KEY (group_id, user_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_group_members_user ON group_members(user_id)",
    """
    CREATE TABLE IF NOT EXISTS folders (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        path TEXT NOT NULL UNIQUE,
        parent_id TEXT,
        owner_id INTEGER,
        is_public BOOLEAN NOT NULL DEFAULT 1,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_folders_parent ON folders(parent_id)",
    """
    CREATE TABLE IF NOT EXISTS folder_allowed_users (
        folder_id TEXT NOT NULL,
        user_id INTEGER NOT NULL,
        PRIMARY KEY (folder_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS permissions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        resource_id TEXT NOT NULL,
        principal_type TEXT NOT NULL CHECK(principal_type IN ('user', 'group')),
        principal_id INTEGER NOT NULL,
        access TEXT NOT NULL CHECK(access IN ('read', 'write', 'admin')),
        granted_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(resource_id, principal_type, principal_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_permissions_principal ON permissions(principal_type, principal_id)",
)


async def connect(db_path: Path) -> aiosqlite.Connection:
    """Open a connection with row access by column name."""
    conn = await aiosqlite.connect(db_path, timeout=30)
    conn.row_factory = aiosqlite.Row
    await conn.execute("PRAGMA journal_mode=WAL")
    return conn


async def init_schema(conn: aiosqlite.Connection) -> None:
    """Create tables and indexes if missing."""
    for statement in SCHEMA:
        await conn.execute(statement)
    await conn.commit()


class AsyncConnectionPool:
    """Simple async connection pool for aiosqlite.

    One pool is owned by the application (``app.state.pool``) and closed in
    the lifespan handler; request handlers borrow a connection per request.
    """

    def __init__(self, db_path: Path, max_connections: int = 10):
        self.db_path = db_path
        self.max_connections = max_connections
        self._connections: list[aiosqlite.Connection] = []
        self._semaphore = asyncio.Semaphore(max_connections)
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        """Create the schema on a first connection."""
        conn = await self.acquire()
        try:
            await init_schema(conn)
        finally:
            await self.release(conn)
        logger.info("Database ready at %s", self.db_path)

    async def acquire(self) -> aiosqlite.Connection:
        """Acquire a connection from the pool."""
        await self._semaphore.acquire()
        try:
            async with self._lock:
                if self._connections:
                    return self._connections.pop()
            return await connect(self.db_path)
        except BaseException:
            self._semaphore.release()
            raise

    async def release(self, conn: aiosqlite.Connection) -> None:
        """Release a connection back to the pool."""
        try:
            if conn.in_transaction:
                await conn.rollback()
            async with self._lock:
                if len(self._connections) < self.max_connections:
                    self._connections.append(conn)
                    return
            await conn.close()
        finally:
            self._semaphore.release()

    async def close_all(self) -> None:
        """Close all connections in the pool."""
        async with self._lock:
            for conn in self._connections:
                await conn.close()
            self._connections.clear()
