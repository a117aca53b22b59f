"""Sale domain entities."""

import math
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from possync.core.entities.customer import Customer
from possync.core.entities.product import Product

# Floats accumulate rounding noise; anything under half a cent is equal.
MONEY_TOLERANCE = 0.005


def _same_amount(a: float, b: float) -> bool:
    return math.isclose(a, b, abs_tol=MONEY_TOLERANCE)


class PaymentMethod(str, Enum):
    """Accepted payment methods."""

    CASH = "cash"
    CARD = "card"
    DIGITAL = "digital"


class SaleItem(BaseModel):
    """A line on a sale with a snapshot of the product at time of sale."""

    model_config = ConfigDict(frozen=True)

    product_id: int
    product_name: str
    unit_price: float
    quantity: int = Field(gt=0)
    subtotal: float  # quantity * unit_price

    @model_validator(mode="after")
    def check_subtotal(self) -> "SaleItem":
        if not _same_amount(self.subtotal, self.quantity * self.unit_price):
            raise ValueError("subtotal must equal quantity * unit_price")
        return self

    @classmethod
    def from_product(cls, product: Product, quantity: int) -> "SaleItem":
        """Snapshot a product's name and price into a sale line."""
        return cls(
            product_id=product.id,  # type: ignore[arg-type]
            product_name=product.name,
            unit_price=product.price,
            quantity=quantity,
            subtotal=product.price * quantity,
        )


class Sale(BaseModel):
    """
    A completed sale. Immutable once built.

    Identifiers are generated client-side and accepted as-is by the remote
    store, so sales never go through identifier remapping themselves.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    cashier_id: int
    cashier_name: str
    customer_id: int | None = None
    customer_name: str | None = None
    items: list[SaleItem] = Field(default_factory=list)
    subtotal: float
    tax: float
    discount: float = 0.0
    total: float
    payment_method: PaymentMethod
    payment_amount: float
    change: float
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def check_totals(self) -> "Sale":
        """Verify the arithmetic invariants between the money fields."""
        if self.items and not _same_amount(
            self.subtotal, sum(i.subtotal for i in self.items)
        ):
            raise ValueError("subtotal must equal the sum of line subtotals")
        if not _same_amount(self.total, self.subtotal + self.tax - self.discount):
            raise ValueError("total must equal subtotal + tax - discount")
        if not _same_amount(self.change, self.payment_amount - self.total):
            raise ValueError("change must equal payment_amount - total")
        return self

    @classmethod
    def build(
        cls,
        items: list[SaleItem],
        *,
        tax_rate: float,
        payment_method: PaymentMethod,
        payment_amount: float,
        cashier_id: int,
        cashier_name: str,
        discount: float = 0.0,
        customer: Customer | None = None,
    ) -> "Sale":
        """Compute totals for a list of lines and build the sale."""
        subtotal = sum(i.subtotal for i in items)
        tax = subtotal * tax_rate
        total = subtotal + tax - discount
        return cls(
            cashier_id=cashier_id,
            cashier_name=cashier_name,
            customer_id=customer.id if customer else None,
            customer_name=customer.name if customer else None,
            items=items,
            subtotal=subtotal,
            tax=tax,
            discount=discount,
            total=total,
            payment_method=payment_method,
            payment_amount=payment_amount,
            change=payment_amount - total,
        )

    def references_product(self, product_id: int) -> bool:
        return any(i.product_id == product_id for i in self.items)

    def with_product_id(self, old_id: int, new_id: int) -> "Sale":
        """Return a copy with line references to ``old_id`` pointed at ``new_id``."""
        items = [
            i.model_copy(update={"product_id": new_id}) if i.product_id == old_id else i
            for i in self.items
        ]
        return self.model_copy(update={"items": items})

    def with_customer_id(self, old_id: int, new_id: int) -> "Sale":
        if self.customer_id != old_id:
            return self
        return self.model_copy(update={"customer_id": new_id})
