from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from video_exporter.core.config import settings


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """Create the async engine backing the AI title cache.

    ``file:`` SQLite URLs (shared in-memory databases) are opened in URI mode.
    """

    url = database_url or settings.database_url
    if url.startswith("sqlite") and "file:" in url:
        return create_async_engine(url, echo=False, connect_args={"uri": True})
    return create_async_engine(url, echo=False, pool_pre_ping=True)


engine = create_engine()
SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency that yields a database session."""

    async with SessionLocal() as session:
        yield session


@asynccontextmanager
async def session_scope(factory: async_sessionmaker[AsyncSession] | None = None) -> AsyncIterator[AsyncSession]:
    """Session for scripts: commits on success, rolls back on error."""

    async with (factory or SessionLocal)() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
