"""Database engine and session management"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from estate_ledger.config import Settings


class Base(DeclarativeBase):
    """Base class for all models"""
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database URL"""
    url = settings.database_url
    if url.startswith("sqlite"):
        if url in ("sqlite+aiosqlite://", "sqlite+aiosqlite:///:memory:"):
            # A single shared connection keeps the in-memory database alive
            return create_async_engine(
                url,
                echo=settings.debug,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_async_engine(url, echo=settings.debug)

    return create_async_engine(
        url,
        pool_size=settings.database_pool_size,
        echo=settings.debug,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine):
    """Initialize database tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine):
    """Close database connections"""
    await engine.dispose()
