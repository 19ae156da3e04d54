"""Pytest configuration and fixtures"""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import termhub.models  # noqa: F401
from termhub.main import app
from termhub.core.config import settings
from termhub.core.database import Base, enable_sqlite_foreign_keys, get_db
from termhub.core.security import pwd_context
from termhub.services.project_type_service import seed_project_types

ADMIN_EMAIL = "root@terminal.dev"

# Minimum bcrypt cost keeps the suite fast; verification logic is unchanged
pwd_context.update(bcrypt__rounds=4)


@pytest.fixture(autouse=True)
def test_settings(tmp_path, monkeypatch):
    """Point uploads at a temporary directory and register the admin email"""
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "ADMIN_EMAILS", [ADMIN_EMAIL])
    return settings


@pytest_asyncio.fixture
async def test_db():
    """Create in-memory test database"""
    # Create test engine
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine.sync_engine)

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Create session factory
    TestSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with TestSessionLocal() as session:
        await seed_project_types(session, settings.DEFAULT_PROJECT_TYPES)

    async def override_get_db():
        async with TestSessionLocal() as session:
            yield session

    # Override dependency
    app.dependency_overrides[get_db] = override_get_db

    yield TestSessionLocal

    # Cleanup
    app.dependency_overrides.pop(get_db, None)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(test_db):
    """Create test client"""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def signup(client, username, email=None, password="password123"):
    """Register a user and return (user payload, auth headers)"""
    response = await client.post(
        "/api/auth/signup",
        json={
            "username": username,
            "email": email or f"{username}@terminal.dev",
            "password": password,
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()
    return data["user"], {"Authorization": f"Bearer {data['token']}"}


async def create_project(client, headers, **overrides):
    """Create a project through the multipart endpoint and return its payload"""
    form = {
        "name": "My Repo",
        "description": "A sample repo for testing",
        "type": "library",
        "version": "v1.0.0",
        "tags": "python,retro",
    }
    form.update(overrides)
    response = await client.post("/api/projects", data=form, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["project"]


async def befriend(client, first, second):
    """Make two (user, headers) pairs friends through the request/accept flow"""
    (user_a, headers_a), (user_b, headers_b) = first, second
    response = await client.post(f"/api/users/{user_b['id']}/friend-requests", headers=headers_a)
    assert response.status_code == 201, response.text
    response = await client.post(
        f"/api/users/{user_b['id']}/friend-requests/{user_a['id']}/accept",
        headers=headers_b,
    )
    assert response.status_code == 200, response.text


@pytest_asyncio.fixture
async def alice(client):
    return await signup(client, "alice")


@pytest_asyncio.fixture
async def bob(client):
    return await signup(client, "bob")


@pytest_asyncio.fixture
async def carol(client):
    return await signup(client, "carol")


@pytest_asyncio.fixture
async def admin(client):
    return await signup(client, "root", email=ADMIN_EMAIL)
