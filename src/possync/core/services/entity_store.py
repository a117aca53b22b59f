"""
Entity store: authoritative in-process state for products, customers and sales.

Every operation validates, applies the change to memory, persists it
write-through, then hands a mutation to the reconciler which either sends it
immediately or queues it. A change that is neither delivered nor durably
queued is rolled back in memory and in storage before the error is re-raised.
"""

from collections.abc import Sequence
from typing import Any
from uuid import uuid4

import pydantic

from possync.config import get_logger
from possync.core.entities import (
    ENTITY_MODELS,
    CreateMutation,
    Customer,
    DeleteMutation,
    Entity,
    EntityType,
    Mutation,
    Product,
    Sale,
    TemporaryIdFactory,
    UpdateMutation,
)
from possync.core.exceptions import (
    DuplicateKeyError,
    NotFoundError,
    ValidationError,
)
from possync.core.interfaces import IEntityRepository
from possync.core.services.reconciler import Reconciler

logger = get_logger(__name__)

EntityId = int | str


def _validation_error(exc: pydantic.ValidationError) -> ValidationError:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "payload"
    return ValidationError(field, first["msg"], first.get("input"))


class EntityStore:
    """In-memory collections mirrored to durable local storage."""

    def __init__(
        self,
        repository: IEntityRepository,
        reconciler: Reconciler,
        id_factory: TemporaryIdFactory | None = None,
    ):
        self._repository = repository
        self._reconciler = reconciler
        self._ids = id_factory or TemporaryIdFactory()
        self._collections: dict[EntityType, dict[EntityId, Entity]] = {
            entity_type: {} for entity_type in EntityType
        }
        # temporary id -> server id, so callers holding an old id still resolve
        self._aliases: dict[tuple[EntityType, EntityId], EntityId] = {}
        reconciler.bind(self)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def products(self) -> list[Product]:
        return list(self._collections[EntityType.PRODUCT].values())  # type: ignore[arg-type]

    @property
    def customers(self) -> list[Customer]:
        return list(self._collections[EntityType.CUSTOMER].values())  # type: ignore[arg-type]

    @property
    def sales(self) -> list[Sale]:
        return list(self._collections[EntityType.SALE].values())  # type: ignore[arg-type]

    def list(self, entity_type: EntityType) -> list[Entity]:
        return list(self._collections[entity_type].values())

    def resolve_id(self, entity_type: EntityType, entity_id: EntityId) -> EntityId:
        """Follow a temporary id to the server id it was replaced with."""
        return self._aliases.get((entity_type, entity_id), entity_id)

    def get(self, entity_type: EntityType, entity_id: EntityId) -> Entity:
        entity = self._collections[entity_type].get(self.resolve_id(entity_type, entity_id))
        if entity is None:
            raise NotFoundError(entity_type.value, entity_id)
        return entity

    def find_product_by_barcode(self, barcode: str) -> Product | None:
        for product in self.products:
            if product.barcode == barcode:
                return product
        return None

    def is_product_referenced(self, product_id: int) -> bool:
        """True if any stored sale has a line for the product."""
        return any(sale.references_product(product_id) for sale in self.sales)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Restore all collections from local storage."""
        for entity_type in EntityType:
            entities = await self._repository.load(entity_type)
            self._collections[entity_type] = {e.id: e for e in entities}  # type: ignore[misc]
            for entity in entities:
                self._ids.observe(entity.id)

        logger.info(
            "entity_store_loaded",
            products=len(self._collections[EntityType.PRODUCT]),
            customers=len(self._collections[EntityType.CUSTOMER]),
            sales=len(self._collections[EntityType.SALE]),
        )

    async def replace_all(self, entity_type: EntityType, entities: Sequence[Entity]) -> None:
        """Replace a collection with a remote snapshot."""
        await self._repository.replace_all(entity_type, entities)
        self._collections[entity_type] = {e.id: e for e in entities}  # type: ignore[misc]
        logger.info("entity_collection_replaced", entity_type=entity_type.value, count=len(entities))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, entity_type: EntityType, payload: dict[str, Any]) -> Entity:
        """
        Validate and create an entity.

        Products and customers get a temporary id; when the reconciler delivers
        the create immediately, the entity already carries its server id on
        return.

        Raises:
            ValidationError: A field violates its constraints.
            DuplicateKeyError: A product barcode is already in use.
            PermanentRemoteError: The remote store rejected an immediate send.
            StorageError: The entity or its mutation could not be stored locally.
        """
        data = dict(payload)
        temp_id: int | None = None
        if entity_type is EntityType.SALE:
            data.setdefault("id", str(uuid4()))
        else:
            temp_id = self._ids.next_id()
            data["id"] = temp_id

        entity = self._build(entity_type, data)
        self._validate(entity_type, entity)
        if entity.id in self._collections[entity_type]:
            raise DuplicateKeyError(entity_type.value, "id", entity.id, entity.id)

        await self._persist_new(entity_type, entity)

        mutation = CreateMutation(
            entity_type=entity_type,
            payload=entity.model_dump(mode="json"),
            temp_id=temp_id,
        )
        try:
            await self._reconciler.submit(mutation)
        except Exception:
            # Neither delivered nor queued: the local entity must not outlive it.
            await self._rollback_create(entity_type, entity.id)  # type: ignore[arg-type]
            raise

        logger.info("entity_created", entity_type=entity_type.value, entity_id=entity.id)
        return self.get(entity_type, entity.id)  # type: ignore[arg-type]

    async def update(
        self, entity_type: EntityType, entity_id: EntityId, changes: dict[str, Any]
    ) -> Entity:
        """
        Apply a partial update.

        Raises:
            NotFoundError: Unknown identifier.
            ValidationError: Unknown field, or a field violates its constraints.
            DuplicateKeyError: A product barcode change collides.
        """
        if entity_type is EntityType.SALE:
            raise ValidationError("sale", "sales are immutable", entity_id)

        current = self.get(entity_type, entity_id)
        model = ENTITY_MODELS[entity_type]
        unknown = set(changes) - (set(model.model_fields) - {"id"})
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(field, "unknown or read-only field", changes[field])

        updated = self._build(entity_type, {**current.model_dump(), **changes})
        self._validate(entity_type, updated, exclude_id=current.id)

        await self._persist_replace(entity_type, current, updated)

        mutation = UpdateMutation(
            entity_type=entity_type,
            entity_id=current.id,  # type: ignore[arg-type]
            payload=updated.model_dump(mode="json", include=set(changes)),
        )
        await self._submit_or_restore(entity_type, mutation, current)

        logger.info(
            "entity_updated",
            entity_type=entity_type.value,
            entity_id=current.id,
            fields=sorted(changes),
        )
        return self.get(entity_type, current.id)  # type: ignore[arg-type]

    async def delete(self, entity_type: EntityType, entity_id: EntityId) -> Entity | None:
        """
        Delete an entity.

        A product that appears on any stored sale is kept with stock 0 so sales
        history never references a missing product; the zeroed product is
        returned. Otherwise returns None.
        """
        if entity_type is EntityType.SALE:
            raise ValidationError("sale", "sales cannot be deleted", entity_id)

        current = self.get(entity_type, entity_id)
        mutation = DeleteMutation(entity_type=entity_type, entity_id=current.id)  # type: ignore[arg-type]

        if entity_type is EntityType.PRODUCT and self.is_product_referenced(current.id):  # type: ignore[arg-type]
            zeroed = current.model_copy(update={"stock": 0})
            await self._persist_replace(entity_type, current, zeroed)
            await self._submit_or_restore(entity_type, mutation, current)
            logger.info("product_stock_zeroed", product_id=current.id)
            return zeroed

        collection = self._collections[entity_type]
        del collection[current.id]  # type: ignore[arg-type]
        try:
            await self._repository.delete(entity_type, current.id)  # type: ignore[arg-type]
        except Exception:
            collection[current.id] = current  # type: ignore[index]
            raise

        try:
            await self._reconciler.submit(mutation)
        except Exception:
            collection[current.id] = current  # type: ignore[index]
            await self._repository.save(entity_type, [current])
            raise

        logger.info("entity_deleted", entity_type=entity_type.value, entity_id=current.id)
        return None

    async def remap_identifier(
        self, entity_type: EntityType, old_id: int, new_id: int
    ) -> None:
        """Replace a temporary id with the server id, including sale references."""
        # Memory is switched before any await: an update that lands while the
        # rename is being written must already target the server id.
        collection = self._collections[entity_type]
        entity = collection.get(old_id)
        self._aliases[(entity_type, old_id)] = new_id
        if entity is not None:
            renamed = entity.model_copy(update={"id": new_id})
            self._collections[entity_type] = {
                (new_id if key == old_id else key): (renamed if key == old_id else value)
                for key, value in collection.items()
            }
            await self._repository.replace_identifier(entity_type, old_id, renamed)
            latest = self._collections[entity_type].get(new_id)
            if latest is not None and latest is not renamed:
                await self._repository.save(entity_type, [latest])

        if entity_type is EntityType.PRODUCT:
            changed = [
                s.with_product_id(old_id, new_id)
                for s in self.sales
                if s.references_product(old_id)
            ]
        elif entity_type is EntityType.CUSTOMER:
            changed = [
                s.with_customer_id(old_id, new_id)
                for s in self.sales
                if s.customer_id == old_id
            ]
        else:
            changed = []

        if changed:
            for sale in changed:
                self._collections[EntityType.SALE][sale.id] = sale
            await self._repository.save(EntityType.SALE, changed)

        logger.info(
            "entity_id_remapped",
            entity_type=entity_type.value,
            old_id=old_id,
            new_id=new_id,
            sales_rewritten=len(changed),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _build(entity_type: EntityType, data: dict[str, Any]) -> Entity:
        try:
            return ENTITY_MODELS[entity_type].model_validate(data)
        except pydantic.ValidationError as e:
            raise _validation_error(e) from e

    def _validate(
        self, entity_type: EntityType, entity: Entity, exclude_id: EntityId | None = None
    ) -> None:
        if isinstance(entity, Product):
            if not entity.name.strip():
                raise ValidationError("name", "must not be empty", entity.name)
            if not entity.barcode.strip():
                raise ValidationError("barcode", "must not be empty", entity.barcode)
            if entity.price <= 0:
                raise ValidationError("price", "must be greater than 0", entity.price)
            if entity.stock < 0:
                raise ValidationError("stock", "must not be negative", entity.stock)
            existing = self.find_product_by_barcode(entity.barcode)
            if existing is not None and existing.id != exclude_id:
                raise DuplicateKeyError("product", "barcode", entity.barcode, existing.id)

        elif isinstance(entity, Customer):
            if not entity.name.strip():
                raise ValidationError("name", "must not be empty", entity.name)
            if not entity.phone.strip():
                raise ValidationError("phone", "must not be empty", entity.phone)

        elif isinstance(entity, Sale):
            if not entity.items:
                raise ValidationError("items", "sale must have at least one line item")
            if entity.payment_amount < entity.total:
                raise ValidationError(
                    "payment_amount", "must cover the sale total", entity.payment_amount
                )

    async def _persist_new(self, entity_type: EntityType, entity: Entity) -> None:
        collection = self._collections[entity_type]
        collection[entity.id] = entity  # type: ignore[index]
        try:
            await self._repository.save(entity_type, [entity])
        except Exception:
            del collection[entity.id]  # type: ignore[arg-type]
            raise

    async def _persist_replace(
        self, entity_type: EntityType, previous: Entity, updated: Entity
    ) -> None:
        collection = self._collections[entity_type]
        collection[updated.id] = updated  # type: ignore[index]
        try:
            await self._repository.save(entity_type, [updated])
        except Exception:
            collection[previous.id] = previous  # type: ignore[index]
            raise

    async def _submit_or_restore(
        self, entity_type: EntityType, mutation: Mutation, previous: Entity
    ) -> None:
        try:
            await self._reconciler.submit(mutation)
        except Exception:
            self._collections[entity_type][previous.id] = previous  # type: ignore[index]
            await self._repository.save(entity_type, [previous])
            raise

    async def _rollback_create(self, entity_type: EntityType, entity_id: EntityId) -> None:
        self._collections[entity_type].pop(entity_id, None)
        await self._repository.delete(entity_type, entity_id)
