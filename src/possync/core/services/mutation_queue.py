"""
Durable FIFO queue of mutations awaiting remote confirmation.

Every change is persisted before the call returns, so a crash never loses an
acknowledged offline write.
"""

from possync.config import get_logger
from possync.core.entities import EntityType, Mutation
from possync.core.interfaces import IMutationRepository

logger = get_logger(__name__)


class MutationQueue:
    """Strictly ordered, write-through queue of pending mutations."""

    def __init__(self, repository: IMutationRepository):
        self._repository = repository
        self._pending: list[Mutation] = []

    def __len__(self) -> int:
        return len(self._pending)

    def __bool__(self) -> bool:
        return bool(self._pending)

    async def load(self) -> None:
        """Restore pending mutations from storage."""
        self._pending = sorted(
            await self._repository.load(), key=lambda m: m.sequence or 0
        )
        logger.info("mutation_queue_loaded", pending=len(self._pending))

    def head(self) -> Mutation | None:
        """Oldest pending mutation, or None if the queue is empty."""
        return self._pending[0] if self._pending else None

    def snapshot(self) -> list[Mutation]:
        """Copy of the pending mutations in replay order."""
        return list(self._pending)

    async def enqueue(self, mutation: Mutation) -> Mutation:
        """Append with the next sequence number and persist."""
        sequence = await self._repository.append(mutation)
        stored = mutation.model_copy(update={"sequence": sequence})
        self._pending.append(stored)

        logger.info(
            "mutation_enqueued",
            mutation_id=stored.id,
            sequence=sequence,
            kind=stored.kind,
            entity_type=stored.entity_type.value,
            entity_id=stored.target_id,
            pending=len(self._pending),
        )
        return stored

    async def dequeue(self, mutation_id: str) -> None:
        """Remove a confirmed mutation without reordering the rest."""
        await self._repository.remove(mutation_id)
        self._pending = [m for m in self._pending if m.id != mutation_id]
        logger.debug("mutation_dequeued", mutation_id=mutation_id, pending=len(self._pending))

    async def rewrite_identifier(
        self, entity_type: EntityType, old_id: int, new_id: int
    ) -> int:
        """
        Point every pending reference to ``old_id`` at ``new_id``.

        Returns the number of mutations rewritten.
        """
        rewritten: list[Mutation] = []
        pending: list[Mutation] = []
        for mutation in self._pending:
            updated = mutation.rewrite_reference(entity_type, old_id, new_id)
            if updated is not None:
                rewritten.append(updated)
                mutation = updated
            pending.append(mutation)

        if rewritten:
            await self._repository.update(rewritten)
            self._pending = pending
            logger.info(
                "mutation_ids_rewritten",
                entity_type=entity_type.value,
                old_id=old_id,
                new_id=new_id,
                rewritten=len(rewritten),
            )
        return len(rewritten)
