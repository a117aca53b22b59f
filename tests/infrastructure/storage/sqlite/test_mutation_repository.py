"""Tests for SQLiteMutationRepository."""

from possync.core.entities import (
    CreateMutation,
    DeleteMutation,
    EntityType,
    UpdateMutation,
)
from possync.infrastructure.storage.sqlite import SQLiteMutationRepository


class TestSQLiteMutationRepository:
    async def test_append_assigns_increasing_sequence(self, sqlite_mutations):
        first = await sqlite_mutations.append(
            CreateMutation(entity_type=EntityType.CUSTOMER, payload={"name": "Ana"})
        )
        second = await sqlite_mutations.append(
            DeleteMutation(entity_type=EntityType.CUSTOMER, entity_id=4)
        )

        assert second > first

    async def test_load_preserves_order_and_kind(self, sqlite_mutations):
        mutations = [
            CreateMutation(
                entity_type=EntityType.PRODUCT,
                payload={"id": 10**12, "name": "Tea"},
                temp_id=10**12,
            ),
            UpdateMutation(entity_type=EntityType.PRODUCT, entity_id=10**12, payload={"stock": 3}),
            DeleteMutation(entity_type=EntityType.CUSTOMER, entity_id=2),
        ]
        for mutation in mutations:
            await sqlite_mutations.append(mutation)

        loaded = await sqlite_mutations.load()

        assert [m.id for m in loaded] == [m.id for m in mutations]
        assert [type(m) for m in loaded] == [CreateMutation, UpdateMutation, DeleteMutation]
        assert loaded[0].temp_id == 10**12
        assert loaded[1].payload == {"stock": 3}
        assert all(m.sequence is not None for m in loaded)

    async def test_sequence_not_reused_after_removal(self, sqlite_mutations):
        """Sequence numbers stay monotonic once the queue empties."""
        mutation = DeleteMutation(entity_type=EntityType.CUSTOMER, entity_id=1)
        first = await sqlite_mutations.append(mutation)
        await sqlite_mutations.remove(mutation.id)

        second = await sqlite_mutations.append(
            DeleteMutation(entity_type=EntityType.CUSTOMER, entity_id=2)
        )

        assert second > first
        assert len(await sqlite_mutations.load()) == 1

    async def test_update_rewrites_data_in_place(self, sqlite_mutations):
        head = UpdateMutation(entity_type=EntityType.PRODUCT, entity_id=10**12, payload={"stock": 1})
        tail = DeleteMutation(entity_type=EntityType.PRODUCT, entity_id=10**12)
        await sqlite_mutations.append(head)
        await sqlite_mutations.append(tail)

        await sqlite_mutations.update([tail.model_copy(update={"entity_id": 8})])

        loaded = await sqlite_mutations.load()
        assert [m.id for m in loaded] == [head.id, tail.id]
        assert loaded[1].entity_id == 8

    async def test_survives_new_repository_instance(self, pool, sqlite_mutations):
        mutation = DeleteMutation(entity_type=EntityType.CUSTOMER, entity_id=3)
        await sqlite_mutations.append(mutation)

        reopened = SQLiteMutationRepository(pool)

        assert [m.id for m in await reopened.load()] == [mutation.id]
