"""
In-memory system of record behind the reference REST API.

Mirrors what the POS backend enforces: server-assigned integer ids for products
and customers, unique barcodes, client-assigned sale ids, and delete-or-zero
for products that appear on a sale.
"""

from typing import Any

from possync.config import get_logger
from possync.core.entities import Customer, Product, Sale
from possync.core.exceptions import (
    DuplicateKeyError,
    NotFoundError,
    ValidationError,
)

logger = get_logger(__name__)


class InMemoryBackend:
    """Products, customers and sales held in process memory."""

    def __init__(self) -> None:
        self.products: dict[int, Product] = {}
        self.customers: dict[int, Customer] = {}
        self.sales: dict[str, Sale] = {}
        self._next_product_id = 1
        self._next_customer_id = 1

    # Products

    def list_products(self) -> list[Product]:
        return list(self.products.values())

    def get_product(self, product_id: int) -> Product:
        product = self.products.get(product_id)
        if product is None:
            raise NotFoundError("product", product_id)
        return product

    def _check_barcode(self, barcode: str, exclude_id: int | None = None) -> None:
        for product in self.products.values():
            if product.barcode == barcode and product.id != exclude_id:
                raise DuplicateKeyError("product", "barcode", barcode, product.id)

    def create_product(self, data: dict[str, Any]) -> Product:
        self._check_barcode(data["barcode"])
        product = Product.model_validate({**data, "id": self._next_product_id})
        self._next_product_id += 1
        self.products[product.id] = product  # type: ignore[index]
        logger.info("backend_product_created", product_id=product.id, barcode=product.barcode)
        return product

    def update_product(self, product_id: int, changes: dict[str, Any]) -> Product:
        current = self.get_product(product_id)
        if "barcode" in changes:
            self._check_barcode(changes["barcode"], exclude_id=product_id)
        product = Product.model_validate({**current.model_dump(), **changes, "id": product_id})
        self.products[product_id] = product
        return product

    def delete_or_zero_stock_product(self, product_id: int) -> Product | None:
        """Zero stock when a sale references the product, otherwise delete it."""
        current = self.get_product(product_id)
        if any(sale.references_product(product_id) for sale in self.sales.values()):
            zeroed = current.model_copy(update={"stock": 0})
            self.products[product_id] = zeroed
            logger.info("backend_product_zeroed", product_id=product_id)
            return zeroed
        del self.products[product_id]
        logger.info("backend_product_deleted", product_id=product_id)
        return None

    # Customers

    def list_customers(self) -> list[Customer]:
        return list(self.customers.values())

    def get_customer(self, customer_id: int) -> Customer:
        customer = self.customers.get(customer_id)
        if customer is None:
            raise NotFoundError("customer", customer_id)
        return customer

    def create_customer(self, data: dict[str, Any]) -> Customer:
        customer = Customer.model_validate({**data, "id": self._next_customer_id})
        self._next_customer_id += 1
        self.customers[customer.id] = customer  # type: ignore[index]
        logger.info("backend_customer_created", customer_id=customer.id)
        return customer

    def update_customer(self, customer_id: int, changes: dict[str, Any]) -> Customer:
        current = self.get_customer(customer_id)
        customer = Customer.model_validate(
            {**current.model_dump(), **changes, "id": customer_id}
        )
        self.customers[customer_id] = customer
        return customer

    def delete_customer(self, customer_id: int) -> None:
        self.get_customer(customer_id)
        del self.customers[customer_id]
        logger.info("backend_customer_deleted", customer_id=customer_id)

    # Sales

    def list_sales(self) -> list[Sale]:
        return list(self.sales.values())

    def create_sale(self, sale: Sale) -> Sale:
        if sale.id in self.sales:
            raise DuplicateKeyError("sale", "id", sale.id, sale.id)
        for item in sale.items:
            if item.product_id not in self.products:
                raise ValidationError("items.product_id", "unknown product", item.product_id)
        if sale.customer_id is not None and sale.customer_id not in self.customers:
            raise ValidationError("customer_id", "unknown customer", sale.customer_id)
        self.sales[sale.id] = sale
        logger.info("backend_sale_created", sale_id=sale.id, total=round(sale.total, 2))
        return sale
