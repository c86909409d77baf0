"""
Database engine and session factory.

Services receive an ``AsyncSession`` from ``async_session_maker``;
background tasks build their own NullPool engine (see jobs.utils.database).
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fingrow.config.settings import settings
from fingrow.models import Base


def create_engine(database_url: str | None = None, **kwargs) -> AsyncEngine:
    """
    Create async engine.

    Args:
        database_url: Async SQLAlchemy URL (settings.database_url by default)
        **kwargs: Extra create_async_engine options

    Returns:
        AsyncEngine
    """
    kwargs.setdefault("echo", settings.database_echo)
    return create_async_engine(database_url or settings.database_url, **kwargs)


def create_session_maker(
    engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    """Session factory; objects stay usable after commit."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet (tests, local setup)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)


async_engine = create_engine()
async_session_maker = create_session_maker(async_engine)
