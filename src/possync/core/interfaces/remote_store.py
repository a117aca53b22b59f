"""
Abstract interface for the remote system of record.

Implementations raise ``TransientRemoteError`` for network problems,
``PermanentRemoteError`` when the payload is rejected, and
``AlreadyAppliedError`` when the store reports the change already exists.
"""

from abc import ABC, abstractmethod
from typing import Any

from possync.core.entities import Customer, Product, Sale


class IRemoteStore(ABC):
    """Interface for the transport-agnostic remote store."""

    # Products
    @abstractmethod
    async def create_product(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a product; the response carries the server-assigned ``id``."""
        pass

    @abstractmethod
    async def update_product(self, product_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def delete_or_zero_stock_product(self, product_id: int) -> None:
        """Delete a product, or zero its stock when sales reference it."""
        pass

    # Customers
    @abstractmethod
    async def create_customer(self, payload: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def update_customer(self, customer_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def delete_customer(self, customer_id: int) -> None:
        pass

    # Sales
    @abstractmethod
    async def create_sale(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create a sale with a client-supplied ``id``."""
        pass

    # Initial load
    @abstractmethod
    async def list_products(self) -> list[Product]:
        pass

    @abstractmethod
    async def list_customers(self) -> list[Customer]:
        pass

    @abstractmethod
    async def list_sales(self) -> list[Sale]:
        pass

    @abstractmethod
    async def check_health(self) -> bool:
        """Return True if the store is reachable. Never raises."""
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None
