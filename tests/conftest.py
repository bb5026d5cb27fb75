"""Shared test fixtures: single test DB for all test modules."""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Use a shared in-memory DB with check_same_thread=False and StaticPool
# This ensures all connections see the same in-memory database.
from sqlalchemy.pool import StaticPool

from wellbalance.clock import FixedClock, get_clock
from wellbalance.db.engine import get_session
from wellbalance.db.tables import Base

TEST_DB_URL = "sqlite+aiosqlite:///file:test?mode=memory&cache=shared&uri=true"

TODAY = date(2026, 10, 18)

test_engine = create_async_engine(
    TEST_DB_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = async_sessionmaker(test_engine, expire_on_commit=False, class_=AsyncSession)


async def override_get_session():
    async with TestSession() as session:
        yield session


def override_get_clock():
    return FixedClock(TODAY)


# Import app and override BEFORE any test module imports app
from wellbalance.api.main import app  # noqa: E402

app.dependency_overrides[get_session] = override_get_session
app.dependency_overrides[get_clock] = override_get_clock

# The chat stream opens its own session through the module-level factory
import wellbalance.db.engine as _engine_mod  # noqa: E402
_engine_mod.async_session = TestSession
_engine_mod.engine = test_engine


@asynccontextmanager
async def get_test_session():
    """Context manager for seeding data in tests."""
    async with TestSession() as session:
        yield session


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create tables before each test, drop after."""
    import wellbalance.db.user_tables  # noqa: F401
    import wellbalance.db.tracking_tables  # noqa: F401

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def session():
    async with TestSession() as s:
        yield s


@pytest_asyncio.fixture
async def user():
    """A signed-up account: alice@example.com / correct-horse."""
    from wellbalance.auth import hash_password
    from wellbalance.db.user_tables import UserRow

    async with TestSession() as s:
        row = UserRow(
            id="user-alice",
            email="alice@example.com",
            password_hash=hash_password("correct-horse"),
            display_name="Alice Walker",
        )
        s.add(row)
        await s.commit()
        return row


@pytest_asyncio.fixture
async def auth_headers(user):
    from wellbalance.auth import create_access_token

    token = create_access_token(user.id)["access_token"]
    return {"Authorization": f"Bearer {token}"}
