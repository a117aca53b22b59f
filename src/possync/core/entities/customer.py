"""Customer domain entities."""

from pydantic import BaseModel


class Customer(BaseModel):
    """A customer record that can be attached to a sale."""

    id: int | None = None
    name: str
    phone: str = ""
    email: str = ""
