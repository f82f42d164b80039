"""
PLE Platform - Database Engine
==============================
Async SQLAlchemy engine with connection pooling.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ple_platform.core.config import get_settings

settings = get_settings()

_engine_kwargs = {"echo": settings.app_debug, "pool_pre_ping": True}
if settings.database_url.startswith("postgresql"):
    _engine_kwargs.update(pool_size=settings.db_pool_size, max_overflow=settings.db_max_overflow)

engine = create_async_engine(settings.database_url, **_engine_kwargs)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


async def get_db() -> AsyncSession:
    """FastAPI dependency that yields a DB session."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db():
    """Create tables only in development. Production must use Alembic migrations."""
    if settings.app_env.lower() != "development":
        return
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
