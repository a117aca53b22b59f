"""Complete Sale Use Case: turns a cart into a Sale and decrements stock."""

from dataclasses import dataclass, field

from possync.config import get_logger
from possync.core.entities import (
    Cart,
    EntityType,
    PaymentMethod,
    Product,
    Sale,
    SaleItem,
)
from possync.core.exceptions import (
    EmptyCartError,
    InsufficientPaymentError,
    InsufficientStockError,
    PosError,
)
from possync.core.services import EntityStore

logger = get_logger(__name__)


@dataclass
class CompleteSaleResult:
    """Result of completing a sale."""

    sale: Sale
    updated_products: list[Product] = field(default_factory=list)
    # Lines whose stock decrement failed after the sale was committed
    stock_errors: dict[int, PosError] = field(default_factory=dict)


class CompleteSaleUseCase:
    """
    Build an immutable Sale from the cart and route it through the entity store.

    The sale is created first; one stock-decrement update per line follows.
    Each goes through the same online/offline path as any other mutation, so
    offline sales decrement local stock immediately and queue the remote update.

    Each decrement is sent as the absolute stock the client computed
    (``{"stock": current - quantity}``), not as a relative change, so the remote
    store applies it last-write-wins. Two terminals selling the same product
    offline overwrite each other's decrement until the next refresh.

    Once the sale is committed the cart is cleared whatever happens to the
    decrements. A decrement that fails is logged and returned in
    ``CompleteSaleResult.stock_errors`` rather than raised, so a retry by the
    cashier cannot record the sale twice.
    """

    def __init__(
        self,
        entity_store: EntityStore,
        tax_rate: float = 0.10,
        cashier_id: int = 1,
        cashier_name: str = "Admin",
    ):
        self._entity_store = entity_store
        self._tax_rate = tax_rate
        self._cashier_id = cashier_id
        self._cashier_name = cashier_name

    async def execute(
        self,
        cart: Cart,
        payment_method: PaymentMethod,
        payment_amount: float,
        discount: float = 0.0,
    ) -> CompleteSaleResult:
        """
        Complete the sale.

        Raises:
            EmptyCartError: Cart has no lines.
            InsufficientStockError: A line exceeds the product's current stock.
            InsufficientPaymentError: Payment does not cover the total.
            PermanentRemoteError: The remote store rejected the sale itself.
        """
        if cart.is_empty:
            raise EmptyCartError()

        logger.info(
            "complete_sale_started",
            lines=len(cart.items),
            payment_method=payment_method.value,
        )

        items: list[SaleItem] = []
        for line in cart.items:
            product: Product = self._entity_store.get(EntityType.PRODUCT, line.product.id)  # type: ignore[assignment, arg-type]
            if line.quantity > product.stock:
                raise InsufficientStockError(product.id, line.quantity, product.stock)  # type: ignore[arg-type]
            items.append(SaleItem.from_product(product, line.quantity))

        # Priced from the store, not the cart snapshot taken at add time.
        subtotal = sum(item.subtotal for item in items)
        total = subtotal + subtotal * self._tax_rate - discount
        if payment_amount < total:
            raise InsufficientPaymentError(payment_amount, total)

        customer = cart.customer
        if customer is not None:
            customer = self._entity_store.get(EntityType.CUSTOMER, customer.id)  # type: ignore[assignment, arg-type]

        sale = Sale.build(
            items,
            tax_rate=self._tax_rate,
            payment_method=payment_method,
            payment_amount=payment_amount,
            cashier_id=self._cashier_id,
            cashier_name=self._cashier_name,
            discount=discount,
            customer=customer,
        )

        sale = await self._entity_store.create(EntityType.SALE, sale.model_dump(mode="json"))  # type: ignore[assignment]

        # The sale is committed; from here on the cart must not be sold again.
        result = CompleteSaleResult(sale=sale)
        try:
            for item in sale.items:
                try:
                    result.updated_products.append(await self._decrement(item))
                except PosError as e:
                    result.stock_errors[item.product_id] = e
                    logger.error(
                        "stock_decrement_failed",
                        sale_id=sale.id,
                        product_id=item.product_id,
                        quantity=item.quantity,
                        error=e.message,
                        error_code=e.code,
                    )
        finally:
            cart.clear()

        logger.info(
            "complete_sale_complete",
            sale_id=sale.id,
            total=round(sale.total, 2),
            lines=len(sale.items),
            stock_errors=len(result.stock_errors),
        )
        return result

    async def _decrement(self, item: SaleItem) -> Product:
        product: Product = self._entity_store.get(EntityType.PRODUCT, item.product_id)  # type: ignore[assignment]
        return await self._entity_store.update(  # type: ignore[return-value]
            EntityType.PRODUCT,
            product.id,  # type: ignore[arg-type]
            {"stock": product.stock - item.quantity},
        )
