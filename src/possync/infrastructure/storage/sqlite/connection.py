"""
Fixed-size pool of aiosqlite connections for the local store.

Each POS session owns one pool and hands it to its repositories. Every
connection runs in WAL mode with the configured ``synchronous`` level; the
queue relies on ``FULL`` so an acknowledged offline write survives power loss.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import aiosqlite

from possync.config import get_logger

if TYPE_CHECKING:
    from possync.config.settings import StorageSettings

logger = get_logger(__name__)

SynchronousMode = Literal["NORMAL", "FULL"]


class ConnectionPool:
    """Opens ``pool_size`` connections lazily and lends them out one at a time."""

    def __init__(
        self,
        db_path: Path,
        pool_size: int = 2,
        busy_timeout: int = 30000,
        synchronous: SynchronousMode = "FULL",
    ):
        self.db_path = db_path
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout
        self.synchronous = synchronous

        self._idle: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue()
        self._opened: list[aiosqlite.Connection] = []
        self._open_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, storage: "StorageSettings") -> "ConnectionPool":
        return cls(
            db_path=storage.db_path,
            pool_size=storage.pool_size,
            busy_timeout=storage.busy_timeout,
            synchronous=storage.synchronous,
        )

    @property
    def is_open(self) -> bool:
        return bool(self._opened)

    async def initialize(self) -> None:
        """Create the database directory and open every connection."""
        async with self._open_lock:
            if self._opened:
                return
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            for _ in range(self.pool_size):
                conn = await self._connect()
                self._opened.append(conn)
                self._idle.put_nowait(conn)

        logger.info(
            "sqlite_pool_opened",
            db_path=str(self.db_path),
            pool_size=self.pool_size,
            synchronous=self.synchronous,
        )

    async def _connect(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self.db_path)
        for pragma in (
            "journal_mode=WAL",
            f"synchronous={self.synchronous}",
            f"busy_timeout={self.busy_timeout}",
        ):
            await conn.execute(f"PRAGMA {pragma}")
        conn.row_factory = aiosqlite.Row
        return conn

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection; waits while all of them are lent out."""
        if not self._opened:
            await self.initialize()
        conn = await self._idle.get()
        try:
            yield conn
        finally:
            self._idle.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection and commit on exit, or roll back on error."""
        async with self.acquire() as conn:
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    async def close(self) -> None:
        async with self._open_lock:
            opened, self._opened = self._opened, []
            self._idle = asyncio.Queue()
            for conn in opened:
                await conn.close()
        if opened:
            logger.info("sqlite_pool_closed", db_path=str(self.db_path))
