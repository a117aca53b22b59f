"""SQLite implementation of write-through entity persistence."""

from collections.abc import Sequence

import aiosqlite

from possync.config import get_logger
from possync.core.entities import ENTITY_MODELS, Entity, EntityType
from possync.core.exceptions import DatabaseError
from possync.core.interfaces import IEntityRepository
from possync.infrastructure.storage.sqlite.connection import ConnectionPool

logger = get_logger(__name__)

_TABLES = {
    EntityType.PRODUCT: "products",
    EntityType.CUSTOMER: "customers",
    EntityType.SALE: "sales",
}


class SQLiteEntityRepository(IEntityRepository):
    """Stores each entity as a JSON document keyed by its identifier."""

    def __init__(self, pool: ConnectionPool):
        self._pool = pool

    async def load(self, entity_type: EntityType) -> list[Entity]:
        model = ENTITY_MODELS[entity_type]
        try:
            async with self._pool.acquire() as conn:
                cursor = await conn.execute(
                    f"SELECT data FROM {_TABLES[entity_type]} ORDER BY position"
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise DatabaseError(f"load {entity_type.value}", str(e)) from e
        return [model.model_validate_json(row["data"]) for row in rows]

    async def save(self, entity_type: EntityType, entities: Sequence[Entity]) -> None:
        if not entities:
            return
        try:
            async with self._pool.transaction() as conn:
                await conn.executemany(
                    f"""
                    INSERT INTO {_TABLES[entity_type]} (id, data) VALUES (?, ?)
                    ON CONFLICT(id) DO UPDATE SET data = excluded.data
                    """,
                    [(str(e.id), e.model_dump_json()) for e in entities],
                )
        except aiosqlite.Error as e:
            raise DatabaseError(f"save {entity_type.value}", str(e)) from e
        logger.debug("entities_saved", entity_type=entity_type.value, count=len(entities))

    async def delete(self, entity_type: EntityType, entity_id: int | str) -> None:
        try:
            async with self._pool.transaction() as conn:
                await conn.execute(
                    f"DELETE FROM {_TABLES[entity_type]} WHERE id = ?",
                    (str(entity_id),),
                )
        except aiosqlite.Error as e:
            raise DatabaseError(f"delete {entity_type.value}", str(e)) from e

    async def replace_identifier(
        self, entity_type: EntityType, old_id: int, entity: Entity
    ) -> None:
        table = _TABLES[entity_type]
        try:
            async with self._pool.transaction() as conn:
                # Keep the row's position so load order is unchanged.
                cursor = await conn.execute(
                    f"UPDATE {table} SET id = ?, data = ? WHERE id = ?",
                    (str(entity.id), entity.model_dump_json(), str(old_id)),
                )
                if cursor.rowcount == 0:
                    await conn.execute(
                        f"INSERT INTO {table} (id, data) VALUES (?, ?)",
                        (str(entity.id), entity.model_dump_json()),
                    )
        except aiosqlite.Error as e:
            raise DatabaseError(f"replace {entity_type.value} id", str(e)) from e

    async def replace_all(self, entity_type: EntityType, entities: Sequence[Entity]) -> None:
        table = _TABLES[entity_type]
        try:
            async with self._pool.transaction() as conn:
                await conn.execute(f"DELETE FROM {table}")
                await conn.executemany(
                    f"INSERT INTO {table} (id, data) VALUES (?, ?)",
                    [(str(e.id), e.model_dump_json()) for e in entities],
                )
        except aiosqlite.Error as e:
            raise DatabaseError(f"replace {entity_type.value} collection", str(e)) from e
        logger.info("entity_collection_stored", entity_type=entity_type.value, count=len(entities))
