"""Unit tests for the SQLite connection pool."""

from pathlib import Path

import aiosqlite
import pytest

from possync.config.settings import StorageSettings
from possync.infrastructure.storage.sqlite.connection import ConnectionPool


async def _pragma(conn: aiosqlite.Connection, name: str):
    cursor = await conn.execute(f"PRAGMA {name}")
    return (await cursor.fetchone())[0]


class TestConnectionPoolConfig:
    """Construction and settings."""

    def test_defaults(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path)

        assert pool.db_path == temp_db_path
        assert pool.pool_size == 2
        assert pool.busy_timeout == 30000
        assert pool.synchronous == "FULL"
        assert pool.is_open is False

    def test_from_settings(self, tmp_path: Path):
        storage = StorageSettings(
            data_dir=tmp_path,
            db_name="till.db",
            pool_size=3,
            busy_timeout=500,
            synchronous="NORMAL",
        )

        pool = ConnectionPool.from_settings(storage)

        assert pool.db_path == tmp_path / "till.db"
        assert pool.pool_size == 3
        assert pool.busy_timeout == 500
        assert pool.synchronous == "NORMAL"


class TestConnectionPoolOpen:
    """Tests for initialize() and per-connection pragmas."""

    async def test_creates_missing_directory(self, tmp_path: Path):
        db_path = tmp_path / "subdir" / "nested" / "test.db"
        pool = ConnectionPool(db_path, pool_size=1)

        await pool.initialize()
        assert db_path.parent.exists()
        await pool.close()

    async def test_initialize_twice_keeps_pool_size(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=2)

        await pool.initialize()
        await pool.initialize()

        async with pool.acquire() as first, pool.acquire() as second:
            assert first is not second
        await pool.close()

    async def test_full_sync_by_default(self, temp_db_path: Path):
        """Queue writes are flushed to disk before a transaction returns."""
        pool = ConnectionPool(temp_db_path, pool_size=1)

        async with pool.acquire() as conn:
            assert (await _pragma(conn, "journal_mode")).lower() == "wal"
            assert await _pragma(conn, "synchronous") == 2  # FULL
            assert await _pragma(conn, "busy_timeout") == 30000
            assert conn.row_factory is aiosqlite.Row
        await pool.close()

    async def test_normal_sync_from_settings(self, tmp_path: Path):
        storage = StorageSettings(data_dir=tmp_path, pool_size=1, synchronous="NORMAL")
        pool = ConnectionPool.from_settings(storage)

        async with pool.acquire() as conn:
            assert await _pragma(conn, "synchronous") == 1  # NORMAL
        await pool.close()


class TestConnectionPoolUsage:
    """Tests for acquire(), transaction() and close()."""

    async def test_acquire_opens_lazily(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)

        async with pool.acquire() as conn:
            cursor = await conn.execute("SELECT 1")
            assert (await cursor.fetchone())[0] == 1

        assert pool.is_open is True
        await pool.close()

    async def test_single_connection_is_reused(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)

        async with pool.acquire() as first:
            pass
        async with pool.acquire() as second:
            assert second is first
        await pool.close()

    async def test_transaction_commits(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=1)
        async with pool.transaction() as conn:
            await conn.execute("CREATE TABLE t (v INTEGER)")
            await conn.execute("INSERT INTO t VALUES (1)")

        async with pool.acquire() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM t")
            assert (await cursor.fetchone())[0] == 1
        await pool.close()

    async def test_transaction_rolls_back_on_error(self, temp_db_path: Path):
        """A failing block leaves no partial writes."""
        pool = ConnectionPool(temp_db_path, pool_size=1)
        async with pool.transaction() as conn:
            await conn.execute("CREATE TABLE t (v INTEGER)")

        with pytest.raises(RuntimeError):
            async with pool.transaction() as conn:
                await conn.execute("INSERT INTO t VALUES (1)")
                raise RuntimeError("boom")

        async with pool.acquire() as conn:
            cursor = await conn.execute("SELECT COUNT(*) FROM t")
            assert (await cursor.fetchone())[0] == 0
        await pool.close()

    async def test_close_allows_reopen(self, temp_db_path: Path):
        pool = ConnectionPool(temp_db_path, pool_size=2)
        await pool.initialize()
        await pool.close()

        assert pool.is_open is False
        async with pool.acquire() as conn:
            cursor = await conn.execute("SELECT 1")
            assert (await cursor.fetchone())[0] == 1
        assert pool.is_open is True
        await pool.close()
