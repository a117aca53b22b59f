"""Catalog domain entities."""

from pydantic import BaseModel


class Product(BaseModel):
    """A sellable catalog item identified by a unique barcode."""

    id: int | None = None
    name: str
    barcode: str
    price: float  # unit price
    stock: int = 0
    category: str = ""
    image: str | None = None  # URL or asset reference
