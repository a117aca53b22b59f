"""Customer endpoints."""

from fastapi import APIRouter, Depends, Response, status

from possync.api.backend import InMemoryBackend
from possync.api.dependencies import get_backend
from possync.api.schemas import (
    CustomerCreateRequest,
    CustomerUpdateRequest,
    ErrorResponse,
)
from possync.core.entities import Customer

router = APIRouter(prefix="/api/customers", tags=["customers"])


@router.get("", response_model=list[Customer])
async def list_customers(backend: InMemoryBackend = Depends(get_backend)) -> list[Customer]:
    return backend.list_customers()


@router.post("", response_model=Customer, status_code=status.HTTP_201_CREATED)
async def create_customer(
    request: CustomerCreateRequest,
    backend: InMemoryBackend = Depends(get_backend),
) -> Customer:
    return backend.create_customer(request.model_dump())


@router.put("/{customer_id}", response_model=Customer, responses={404: {"model": ErrorResponse}})
async def update_customer(
    customer_id: int,
    request: CustomerUpdateRequest,
    backend: InMemoryBackend = Depends(get_backend),
) -> Customer:
    return backend.update_customer(customer_id, request.model_dump(exclude_unset=True))


@router.delete(
    "/{customer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_customer(
    customer_id: int,
    backend: InMemoryBackend = Depends(get_backend),
) -> Response:
    backend.delete_customer(customer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
