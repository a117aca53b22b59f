"""Pytest fixtures for SQLite storage tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from possync.infrastructure.storage.sqlite import (
    ConnectionPool,
    SQLiteEntityRepository,
    SQLiteMutationRepository,
)
from possync.infrastructure.storage.sqlite.migrations import initialize_database


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
async def pool(temp_db_path: Path) -> AsyncGenerator[ConnectionPool, None]:
    """Connection pool over a freshly migrated database."""
    await initialize_database(temp_db_path)
    pool = ConnectionPool(temp_db_path, pool_size=2)
    await pool.initialize()
    yield pool
    await pool.close()


@pytest.fixture
def sqlite_entities(pool: ConnectionPool) -> SQLiteEntityRepository:
    return SQLiteEntityRepository(pool)


@pytest.fixture
def sqlite_mutations(pool: ConnectionPool) -> SQLiteMutationRepository:
    return SQLiteMutationRepository(pool)
