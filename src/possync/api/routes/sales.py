"""Sale endpoints. Sales are created once and never modified."""

from fastapi import APIRouter, Depends, status

from possync.api.backend import InMemoryBackend
from possync.api.dependencies import get_backend
from possync.api.schemas import ErrorResponse
from possync.core.entities import Sale

router = APIRouter(prefix="/api/sales", tags=["sales"])


@router.get("", response_model=list[Sale])
async def list_sales(backend: InMemoryBackend = Depends(get_backend)) -> list[Sale]:
    return backend.list_sales()


@router.post(
    "",
    response_model=Sale,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "Sale id already recorded"},
    },
)
async def create_sale(
    sale: Sale,
    backend: InMemoryBackend = Depends(get_backend),
) -> Sale:
    """Record a sale under its client-generated id."""
    return backend.create_sale(sale)
