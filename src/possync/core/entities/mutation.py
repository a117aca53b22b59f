"""
Queued mutation entities.

A mutation is plain data (a tagged variant of create/update/delete per entity
type) so the queue can be persisted and replayed after a restart.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field, TypeAdapter

from possync.core.entities.identifiers import EntityType


class _MutationBase(BaseModel, ABC):
    """Fields shared by every mutation kind."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    sequence: int | None = None  # assigned by the queue
    entity_type: EntityType
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    @abstractmethod
    def target_id(self) -> int | str | None:
        """Id of the entity this mutation acts on."""

    def rewrite_reference(
        self, entity_type: EntityType, old_id: int, new_id: int
    ) -> "Mutation | None":
        """
        Return a copy with references to ``old_id`` replaced by ``new_id``.

        Returns None when the mutation does not reference ``old_id``.
        """
        if self.entity_type == entity_type and self.target_id == old_id:
            return self.model_copy(update={"entity_id": new_id})  # type: ignore[return-value]
        return None


class CreateMutation(_MutationBase):
    """Create an entity. ``temp_id`` links a locally allocated id to the server id."""

    kind: Literal["create"] = "create"
    payload: dict[str, Any]
    temp_id: int | None = None

    @property
    def target_id(self) -> int | str | None:
        return self.temp_id if self.temp_id is not None else self.payload.get("id")

    def rewrite_reference(
        self, entity_type: EntityType, old_id: int, new_id: int
    ) -> "Mutation | None":
        # Sales created offline may point at products or customers created offline.
        if self.entity_type is not EntityType.SALE:
            return None

        payload = dict(self.payload)
        changed = False
        if entity_type is EntityType.PRODUCT:
            items = []
            for item in payload.get("items", []):
                if item.get("product_id") == old_id:
                    item = {**item, "product_id": new_id}
                    changed = True
                items.append(item)
            payload["items"] = items
        elif entity_type is EntityType.CUSTOMER and payload.get("customer_id") == old_id:
            payload["customer_id"] = new_id
            changed = True

        return self.model_copy(update={"payload": payload}) if changed else None


class UpdateMutation(_MutationBase):
    """Apply a partial change to an existing entity."""

    kind: Literal["update"] = "update"
    entity_id: int
    payload: dict[str, Any]

    @property
    def target_id(self) -> int | str | None:
        return self.entity_id


class DeleteMutation(_MutationBase):
    """Delete an entity (products may be zeroed instead by the remote store)."""

    kind: Literal["delete"] = "delete"
    entity_id: int

    @property
    def target_id(self) -> int | str | None:
        return self.entity_id


Mutation = Annotated[
    CreateMutation | UpdateMutation | DeleteMutation,
    Field(discriminator="kind"),
]

MutationAdapter: TypeAdapter[Mutation] = TypeAdapter(Mutation)


def mutation_from_json(data: str | bytes) -> Mutation:
    """Deserialize a persisted mutation into its concrete variant."""
    return MutationAdapter.validate_json(data)
