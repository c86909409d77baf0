"""Database engine and session factory for background tasks."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from fingrow.config.database import create_engine, create_session_maker


def create_task_engine():
    """Engine without pooling: each worker thread runs its own event loop."""
    return create_engine(echo=False, poolclass=NullPool)


def create_task_session_maker(engine=None) -> async_sessionmaker[AsyncSession]:
    """Session maker for tasks."""
    if engine is None:
        engine = create_task_engine()
    return create_session_maker(engine)


task_engine = create_task_engine()
task_session_maker = create_task_session_maker(task_engine)
