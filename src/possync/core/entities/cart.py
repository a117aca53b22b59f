"""Shopping cart entities."""

from pydantic import BaseModel, Field, model_validator

from possync.core.entities.customer import Customer
from possync.core.entities.product import Product
from possync.core.exceptions import InsufficientStockError, NotFoundError


class CartItem(BaseModel):
    """A product and quantity waiting to be sold."""

    product: Product
    quantity: int = Field(gt=0)
    subtotal: float = 0.0  # product.price * quantity

    @model_validator(mode="after")
    def compute_subtotal(self) -> "CartItem":
        self.subtotal = self.product.price * self.quantity
        return self


class Cart(BaseModel):
    """Line items and the selected customer for the sale in progress."""

    items: list[CartItem] = Field(default_factory=list)
    customer: Customer | None = None

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def subtotal(self) -> float:
        return sum(item.subtotal for item in self.items)

    def tax(self, rate: float) -> float:
        return self.subtotal * rate

    def total(self, rate: float, discount: float = 0.0) -> float:
        return self.subtotal + self.tax(rate) - discount

    def find(self, product_id: int) -> CartItem | None:
        for item in self.items:
            if item.product.id == product_id:
                return item
        return None

    def add(self, product: Product, quantity: int = 1) -> CartItem:
        """Add a product, merging with an existing line for the same product."""
        existing = self.find(product.id)  # type: ignore[arg-type]
        new_quantity = quantity + (existing.quantity if existing else 0)
        if product.stock < new_quantity:
            raise InsufficientStockError(
                product_id=product.id,  # type: ignore[arg-type]
                requested=new_quantity,
                available=product.stock,
            )

        item = CartItem(product=product, quantity=new_quantity)
        if existing is None:
            self.items.append(item)
        else:
            self.items[self.items.index(existing)] = item
        return item

    def remove(self, product_id: int) -> None:
        self.items = [i for i in self.items if i.product.id != product_id]

    def update_quantity(self, product_id: int, quantity: int) -> None:
        """Set a line's quantity; anything below 1 removes the line."""
        existing = self.find(product_id)
        if existing is None:
            raise NotFoundError("cart item", product_id)
        if quantity < 1:
            self.remove(product_id)
            return
        if existing.product.stock < quantity:
            raise InsufficientStockError(
                product_id=product_id,
                requested=quantity,
                available=existing.product.stock,
            )
        self.items[self.items.index(existing)] = CartItem(
            product=existing.product, quantity=quantity
        )

    def select_customer(self, customer: Customer | None) -> None:
        self.customer = customer

    def clear(self) -> None:
        """Empty the cart and drop the selected customer."""
        self.items = []
        self.customer = None
