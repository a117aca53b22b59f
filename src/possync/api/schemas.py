"""Request and response DTOs for the reference REST API."""

from pydantic import BaseModel, ConfigDict, Field


class ProductCreateRequest(BaseModel):
    """Create product request. The server assigns the id."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    barcode: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    stock: int = Field(default=0, ge=0)
    category: str = ""
    image: str | None = None


class ProductUpdateRequest(BaseModel):
    """Partial product update."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    barcode: str | None = Field(default=None, min_length=1)
    price: float | None = Field(default=None, ge=0)
    stock: int | None = Field(default=None, ge=0)
    category: str | None = None
    image: str | None = None


class CustomerCreateRequest(BaseModel):
    """Create customer request. The server assigns the id."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    phone: str = ""
    email: str = ""


class CustomerUpdateRequest(BaseModel):
    """Partial customer update."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    phone: str | None = None
    email: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float


class ErrorResponse(BaseModel):
    """Standardized error response DTO."""

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    detail: str | None = Field(default=None, description="Extra context")
    path: str | None = Field(default=None, description="Request path")
