"""SQLite implementation of the persisted mutation queue."""

from collections.abc import Sequence

import aiosqlite

from possync.config import get_logger
from possync.core.entities import Mutation, mutation_from_json
from possync.core.exceptions import DatabaseError
from possync.core.interfaces import IMutationRepository
from possync.infrastructure.storage.sqlite.connection import ConnectionPool

logger = get_logger(__name__)


class SQLiteMutationRepository(IMutationRepository):
    """
    Queue rows keyed by an AUTOINCREMENT sequence.

    The sequence is the replay order and is assigned by SQLite on append,
    so it stays monotonic across restarts.
    """

    def __init__(self, pool: ConnectionPool):
        self._pool = pool

    async def load(self) -> list[Mutation]:
        try:
            async with self._pool.acquire() as conn:
                cursor = await conn.execute(
                    "SELECT sequence, data FROM mutation_queue ORDER BY sequence"
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise DatabaseError("load mutation queue", str(e)) from e

        return [
            mutation_from_json(row["data"]).model_copy(update={"sequence": row["sequence"]})
            for row in rows
        ]

    async def append(self, mutation: Mutation) -> int:
        try:
            async with self._pool.transaction() as conn:
                cursor = await conn.execute(
                    """
                    INSERT INTO mutation_queue (mutation_id, kind, entity_type, data, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        mutation.id,
                        mutation.kind,
                        mutation.entity_type.value,
                        mutation.model_dump_json(exclude={"sequence"}),
                        mutation.created_at.isoformat(),
                    ),
                )
                sequence = cursor.lastrowid
        except aiosqlite.Error as e:
            raise DatabaseError("append mutation", str(e)) from e
        return int(sequence)  # type: ignore[arg-type]

    async def remove(self, mutation_id: str) -> None:
        try:
            async with self._pool.transaction() as conn:
                await conn.execute(
                    "DELETE FROM mutation_queue WHERE mutation_id = ?", (mutation_id,)
                )
        except aiosqlite.Error as e:
            raise DatabaseError("remove mutation", str(e)) from e

    async def update(self, mutations: Sequence[Mutation]) -> None:
        if not mutations:
            return
        try:
            async with self._pool.transaction() as conn:
                await conn.executemany(
                    "UPDATE mutation_queue SET data = ? WHERE mutation_id = ?",
                    [(m.model_dump_json(exclude={"sequence"}), m.id) for m in mutations],
                )
        except aiosqlite.Error as e:
            raise DatabaseError("update mutations", str(e)) from e
        logger.debug("mutations_updated", count=len(mutations))
