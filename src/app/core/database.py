"""
Database Configuration

Async SQLAlchemy engine and session factory.
Only used when the tabular store is backed by a SQL database.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all ORM models."""


async def init_db() -> None:
    """
    Verify the database connection and create missing tables.

    Call this on application startup. Schema changes go through Alembic;
    `create_all` only fills in tables that do not exist yet.
    """
    # Import models so they are registered on Base.metadata
    from app.modules.scholarship_applications import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
