"""Product endpoints."""

from fastapi import APIRouter, Depends, Response, status

from possync.api.backend import InMemoryBackend
from possync.api.dependencies import get_backend
from possync.api.schemas import (
    ErrorResponse,
    ProductCreateRequest,
    ProductUpdateRequest,
)
from possync.core.entities import Product

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=list[Product])
async def list_products(backend: InMemoryBackend = Depends(get_backend)) -> list[Product]:
    return backend.list_products()


@router.post(
    "",
    response_model=Product,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def create_product(
    request: ProductCreateRequest,
    backend: InMemoryBackend = Depends(get_backend),
) -> Product:
    """Create a product; the response carries the assigned id."""
    return backend.create_product(request.model_dump())


@router.get("/{product_id}", response_model=Product, responses={404: {"model": ErrorResponse}})
async def get_product(
    product_id: int,
    backend: InMemoryBackend = Depends(get_backend),
) -> Product:
    return backend.get_product(product_id)


@router.put(
    "/{product_id}",
    response_model=Product,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_product(
    product_id: int,
    request: ProductUpdateRequest,
    backend: InMemoryBackend = Depends(get_backend),
) -> Product:
    return backend.update_product(product_id, request.model_dump(exclude_unset=True))


@router.delete("/{product_id}", responses={404: {"model": ErrorResponse}})
async def delete_product(
    product_id: int,
    backend: InMemoryBackend = Depends(get_backend),
) -> Response:
    """
    Delete a product.

    Products that appear on a sale are kept with stock 0 and returned with 200;
    otherwise the product is removed and 204 is returned.
    """
    zeroed = backend.delete_or_zero_stock_product(product_id)
    if zeroed is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return Response(
        content=zeroed.model_dump_json(),
        media_type="application/json",
        status_code=status.HTTP_200_OK,
    )
