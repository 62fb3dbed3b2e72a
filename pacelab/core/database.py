from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from pacelab.config import get_settings
from pacelab.core.lifespan import manager


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models"""

    pass


def create_session_maker(database_url: str) -> tuple[AsyncEngine, async_sessionmaker]:
    """Build an engine and a session factory for ``database_url``.

    Shared by the API lifespan and the operational scripts so both use the
    same pool settings.
    """
    engine = create_async_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )
    return engine, async_sessionmaker(engine, expire_on_commit=False)


@manager.add
@asynccontextmanager
async def database_lifespan() -> AsyncIterator[dict]:
    """
    Manage database connection lifecycle.
    Creates connection pool on startup, disposes on shutdown.
    """
    settings = get_settings()
    logger.info("Initializing database connection pool")

    engine, session_maker = create_session_maker(settings.DATABASE_URL)

    logger.info("Database connection pool ready")

    yield {"session_maker": session_maker}

    logger.info("Shutting down database connection pool")
    await engine.dispose()
    logger.info("Database disconnected")
