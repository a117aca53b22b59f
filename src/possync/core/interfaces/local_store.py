"""Abstract interfaces for local durable storage."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from possync.core.entities import Entity, EntityType, Mutation


class IEntityRepository(ABC):
    """Interface for write-through persistence of entity collections."""

    @abstractmethod
    async def load(self, entity_type: EntityType) -> list[Entity]:
        """Load every stored entity of a type, in insertion order."""
        pass

    @abstractmethod
    async def save(self, entity_type: EntityType, entities: Sequence[Entity]) -> None:
        """Insert or replace entities in a single transaction."""
        pass

    @abstractmethod
    async def delete(self, entity_type: EntityType, entity_id: int | str) -> None:
        """Remove an entity by identifier."""
        pass

    @abstractmethod
    async def replace_identifier(
        self, entity_type: EntityType, old_id: int, entity: Entity
    ) -> None:
        """Atomically replace the row stored under ``old_id`` with ``entity``."""
        pass

    @abstractmethod
    async def replace_all(self, entity_type: EntityType, entities: Sequence[Entity]) -> None:
        """Replace the whole collection (used after a remote refresh)."""
        pass


class IMutationRepository(ABC):
    """Interface for the persisted mutation queue."""

    @abstractmethod
    async def load(self) -> list[Mutation]:
        """Load pending mutations ordered by sequence."""
        pass

    @abstractmethod
    async def append(self, mutation: Mutation) -> int:
        """Persist a mutation and return its assigned sequence number."""
        pass

    @abstractmethod
    async def remove(self, mutation_id: str) -> None:
        """Remove a confirmed mutation."""
        pass

    @abstractmethod
    async def update(self, mutations: Sequence[Mutation]) -> None:
        """Rewrite stored mutations in place, keeping their sequence numbers."""
        pass
