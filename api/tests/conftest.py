"""Pytest configuration and shared fixtures.

This module provides:
- An in-memory SQLite database per test (aiosqlite, foreign keys enforced)
- Async session fixtures for repository/service tests
- FastAPI test clients, one per role
- A mocked OIDC introspection endpoint
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RUN_MIGRATIONS", "false")

from collections.abc import AsyncGenerator, Generator
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from core.auth import IntrospectionResult
from core.cache import clear_all_caches
from core.config import clear_settings_cache
from core.database import Base
from core.wide_event import init_wide_event
from models import User
from tests.factories import (
    ADMIN_ID,
    CONTRIBUTOR_ID,
    NO_ROLE_ID,
    PROVIDER,
    USER_ID,
)

# =============================================================================
# Identities
# =============================================================================

# token -> (sub, roles)
_IDENTITIES: dict[str, tuple[str, tuple[str, ...]]] = {
    "admin-token": ("admin-sub", ("admin",)),
    "contributor-token": ("contributor-sub", ("contributor",)),
    "user-token": ("user-sub", ("user",)),
    "no-role-token": ("no-role-sub", ()),
    # Valid identity with a role but no internal account yet
    "newcomer-token": ("newcomer-sub", ("user",)),
}

_ACCOUNTS: dict[str, str] = {
    ADMIN_ID: "admin-sub",
    CONTRIBUTOR_ID: "contributor-sub",
    USER_ID: "user-sub",
    NO_ROLE_ID: "no-role-sub",
}


@pytest.fixture(autouse=True)
def setup_wide_event():
    """Initialize wide_event context for all tests.

    In production this is done by middleware; in tests we do it here.
    """
    init_wide_event()
    yield

# =============================================================================
# Database Fixtures
# =============================================================================

def _enable_sqlite_savepoints_and_foreign_keys(engine: AsyncEngine) -> None:
    """pysqlite's own transaction handling breaks SAVEPOINT; take it over."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory database for each test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    _enable_sqlite_savepoints_and_foreign_keys(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()

@pytest.fixture
def session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_maker() as session:
        yield session

@pytest_asyncio.fixture
async def accounts(session_maker: async_sessionmaker[AsyncSession]) -> None:
    """Internal accounts for every test identity but the newcomer."""
    async with session_maker() as session:
        session.add_all(
            User(id=user_id, ext_provider_name=PROVIDER, ext_provider_id=sub)
            for user_id, sub in _ACCOUNTS.items()
        )
        await session.commit()

# =============================================================================
# Auth Fixtures
# =============================================================================

async def _fake_introspection(token: str) -> IntrospectionResult:
    identity = _IDENTITIES.get(token)
    if identity is None:
        return IntrospectionResult(active=False)
    sub, roles = identity
    return IntrospectionResult(active=True, sub=sub, name=sub, roles=roles)

@pytest.fixture
def mock_introspection() -> Generator[AsyncMock]:
    """Replace the OIDC introspection call with the identities above."""
    with patch(
        "core.auth.introspect_access_token",
        new=AsyncMock(side_effect=_fake_introspection),
    ) as mock:
        yield mock

# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def app(
    test_engine: AsyncEngine,
    session_maker: async_sessionmaker[AsyncSession],
    accounts: None,
    mock_introspection: AsyncMock,
) -> AsyncGenerator[FastAPI]:
    """FastAPI app on the test database, with introspection mocked.

    ASGITransport does not run the lifespan, so app state is set here.
    """
    from main import app as fastapi_app

    fastapi_app.state.engine = test_engine
    fastapi_app.state.session_maker = session_maker

    yield fastapi_app

def _client(app: FastAPI, token: str | None = None) -> AsyncClient:
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=headers,
    )

@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Anonymous client."""
    async with _client(app) as ac:
        yield ac

@pytest_asyncio.fixture(scope="function")
async def admin_client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with _client(app, "admin-token") as ac:
        yield ac

@pytest_asyncio.fixture(scope="function")
async def contributor_client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with _client(app, "contributor-token") as ac:
        yield ac

@pytest_asyncio.fixture(scope="function")
async def user_client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with _client(app, "user-token") as ac:
        yield ac

@pytest_asyncio.fixture(scope="function")
async def no_role_client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with _client(app, "no-role-token") as ac:
        yield ac

@pytest_asyncio.fixture(scope="function")
async def newcomer_client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with _client(app, "newcomer-token") as ac:
        yield ac

# =============================================================================
# Utility Fixtures
# =============================================================================

@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio backend for anyio (required by httpx)."""
    return "asyncio"

@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None]:
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()

@pytest.fixture(autouse=True)
def reset_caches() -> Generator[None]:
    clear_all_caches()
    yield
    clear_all_caches()
