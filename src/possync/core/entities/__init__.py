"""Core domain entities."""

from possync.core.entities.cart import Cart, CartItem
from possync.core.entities.customer import Customer
from possync.core.entities.identifiers import (
    TEMP_ID_FLOOR,
    EntityType,
    TemporaryIdFactory,
    is_temporary_id,
)
from possync.core.entities.mutation import (
    CreateMutation,
    DeleteMutation,
    Mutation,
    MutationAdapter,
    UpdateMutation,
    mutation_from_json,
)
from possync.core.entities.product import Product
from possync.core.entities.sale import PaymentMethod, Sale, SaleItem

Entity = Product | Customer | Sale

ENTITY_MODELS: dict[EntityType, type[Product] | type[Customer] | type[Sale]] = {
    EntityType.PRODUCT: Product,
    EntityType.CUSTOMER: Customer,
    EntityType.SALE: Sale,
}

__all__ = [
    # Catalog entities
    "Product",
    "Customer",
    # Sale entities
    "Sale",
    "SaleItem",
    "PaymentMethod",
    "Cart",
    "CartItem",
    # Mutation entities
    "Mutation",
    "CreateMutation",
    "UpdateMutation",
    "DeleteMutation",
    "MutationAdapter",
    "mutation_from_json",
    # Identifiers
    "Entity",
    "EntityType",
    "ENTITY_MODELS",
    "TEMP_ID_FLOOR",
    "TemporaryIdFactory",
    "is_temporary_id",
]
