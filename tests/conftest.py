"""Pytest configuration and fixtures."""

import os

# Settings are read at import time by several modules
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STRAVA_CLIENT_ID", "12345")
os.environ.setdefault("STRAVA_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("ENVIRONMENT", "local")

import time
from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import all models so they are registered with Base
from pacelab.activities.models import Activity, Lap  # noqa: F401
from pacelab.auth.models import Athlete
from pacelab.best_efforts.models import BestEffort  # noqa: F401
from pacelab.classification.models import HrZones  # noqa: F401
from pacelab.core.database import Base
from pacelab.dependencies import get_session
from pacelab.main import app as main_app
from tests.factories import ATHLETE_ID


# -------------------------------------------------------------------------
# Database Fixtures
# -------------------------------------------------------------------------


@pytest.fixture
async def async_engine():
    """Create an async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for testing."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def app(db_session: AsyncSession) -> FastAPI:
    """FastAPI app whose session dependency yields the test session."""

    async def override_get_session():
        yield db_session

    main_app.dependency_overrides[get_session] = override_get_session
    yield main_app
    main_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
async def athlete(db_session: AsyncSession) -> Athlete:
    """Authorized athlete with a token valid for another hour."""
    athlete = Athlete(
        id=ATHLETE_ID,
        firstname="Test",
        lastname="Runner",
        access_token="access-token",
        refresh_token="refresh-token",
        token_expires_at=int(time.time()) + 3600,
        authorized=True,
    )
    db_session.add(athlete)
    await db_session.commit()
    return athlete
