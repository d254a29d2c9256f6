import os
import tempfile
from pathlib import Path

# Point the app at a throwaway database before backend.config is imported.
_db_dir = tempfile.mkdtemp(prefix="vocab_srs_test_")
os.environ.setdefault(
    "VOCAB_SRS_DATABASE_URL", f"sqlite+aiosqlite:///{Path(_db_dir) / 'test.db'}"
)

import pytest_asyncio  # noqa: E402

from backend.database import async_session, engine  # noqa: E402
from backend.models import Base  # noqa: E402


@pytest_asyncio.fixture
async def fresh_db():
    """Recreate all tables, and release pooled connections after the test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest_asyncio.fixture
async def db(fresh_db):
    async with async_session() as session:
        yield session
