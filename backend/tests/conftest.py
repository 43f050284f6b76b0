"""
Shared test configuration.

Settings are read from the environment at import time, so the required values
are set here before any ``catalog_admin`` module is imported.
"""

import os
import tempfile
from unittest.mock import patch

_TEST_ROOT = tempfile.mkdtemp(prefix="catalog-admin-tests-")
os.environ.setdefault("MASTER_TOKEN", "test-master-token")
os.environ.setdefault("JWT__SECRET_KEY", "test-jwt-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("LOGS_DIR", os.path.join(_TEST_ROOT, "logs"))
os.environ.setdefault(
    "DATABASE_URL", f"sqlite:///{os.path.join(_TEST_ROOT, 'catalog_admin.db')}"
)

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from catalog_admin.models import Base  # noqa: E402


@pytest.fixture
async def test_db(tmp_path):
    """Fresh SQLite database per test, swapped in for the application's sessions."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )

    with patch("catalog_admin.db.database.AsyncSessionLocal", session_maker):
        yield session_maker

    await engine.dispose()
