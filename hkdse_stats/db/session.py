"""
Async database session handling for the API.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from hkdse_stats.config import DATABASE_URL
from hkdse_stats.db.schema import metadata

engine = create_async_engine(DATABASE_URL, echo=False)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request"""
    async with AsyncSessionLocal() as session:
        yield session


async def init_db(bind: AsyncEngine = engine):
    """Create any missing tables"""
    async with bind.begin() as conn:
        await conn.run_sync(metadata.create_all)
