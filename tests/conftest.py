"""
Pytest Configuration and Fixtures

Provides common fixtures for all tests including:
- Sample result-table CSV texts (tables 3A, 3B, 3F, 3I, 3J)
- An extraction result built from them
- A temporary SQLite database loaded from the generated import script
- API client
"""

from typing import AsyncGenerator, Dict

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hkdse_stats.api.main import app
from hkdse_stats.core.extraction import run_extraction
from hkdse_stats.db.loader import iter_statements
from hkdse_stats.db.schema import metadata
from hkdse_stats.db.session import get_db
from hkdse_stats.db.sql_emitter import render_import_file

from tests.factories import TEST_YEAR, build_sample_sources


@pytest.fixture
def sample_sources() -> Dict[str, str]:
    """File name -> CSV text for every source table"""
    return build_sample_sources()


@pytest.fixture
def csv_dir(tmp_path, sample_sources):
    """Directory holding the sample CSV files"""
    directory = tmp_path / "csv"
    directory.mkdir()
    for name, text in sample_sources.items():
        (directory / name).write_text(text, encoding="utf-8")
    return directory


@pytest.fixture
def extraction_result(sample_sources):
    return run_extraction(sample_sources, TEST_YEAR)


@pytest.fixture
async def engine(tmp_path, extraction_result):
    """Test database loaded from the generated import script"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
        for statement in iter_statements(render_import_file(extraction_result)):
            await conn.exec_driver_sql(statement)

    yield engine

    await engine.dispose()


@pytest.fixture
async def empty_engine(tmp_path):
    """Database without any tables, for store failure paths"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}", echo=False)
    yield engine
    await engine.dispose()


def _override_db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    return override_get_db


@pytest.fixture
async def client(engine) -> AsyncGenerator[AsyncClient, None]:
    """API client backed by the loaded test database"""
    app.dependency_overrides[get_db] = _override_db(engine)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def broken_client(empty_engine) -> AsyncGenerator[AsyncClient, None]:
    """API client whose database has no tables"""
    app.dependency_overrides[get_db] = _override_db(empty_engine)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
