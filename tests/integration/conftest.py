"""Fixtures for HTTP-level tests.

Each test gets its own storage root and database, a set of seeded accounts
and a ``TestClient`` running the full application lifespan.
"""
import asyncio
from pathlib import Path
from typing import Dict, Generator

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.domain import Role
from app.infrastructure.database import connect, init_schema
from app.infrastructure.repositories import AsyncUserRepository
from app.main import create_app

NOTIFY_TOKEN = "test-notify-token"

ACCOUNTS = {
    "admin": ("adminpass", Role.ADMIN),
    "alice": ("alicepass", Role.USER),
    "bob": ("bobpass", Role.USER),
}


@pytest.fixture(scope="function")
def settings(tmp_path: Path) -> Settings:
    storage_root = tmp_path / "storage"
    storage_root.mkdir()
    return Settings(
        storage_root=storage_root,
        database_path=tmp_path / "gallery.db",
        notify_token=NOTIFY_TOKEN,
        page_size=10,
    )


@pytest.fixture(scope="function")
def accounts(settings: Settings) -> Dict[str, dict]:
    """Seed the accounts and return {name: {id, username, password}}."""
    async def seed():
        conn = await connect(settings.database_path)
        try:
            await init_schema(conn)
            repo = AsyncUserRepository(conn)
            return {
                name: await repo.create(name, password, role)
                for name, (password, role) in ACCOUNTS.items()
            }
        finally:
            await conn.close()

    ids = asyncio.run(seed())
    return {
        name: {"id": ids[name], "username": name, "password": ACCOUNTS[name][0]}
        for name in ACCOUNTS
    }


@pytest.fixture(scope="function")
def client(settings: Settings, accounts: Dict) -> Generator[TestClient, None, None]:
    """Unauthenticated client.

    Usage:
        def test_something(client, login):
            login(client, "alice")
            response = client.get("/api/gallery")
    """
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def login(accounts: Dict):
    """Log ``client`` in as one of the seeded accounts."""
    def _login(client: TestClient, name: str) -> TestClient:
        response = client.post(
            "/login",
            data={"username": name, "password": accounts[name]["password"]}
        )
        assert response.status_code == 200
        return client
    return _login


@pytest.fixture
def admin_client(client: TestClient, login) -> TestClient:
    return login(client, "admin")
