"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Callable, Sequence
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from possync.api.backend import InMemoryBackend
from possync.api.main import create_app
from possync.config import reset_settings
from possync.core.entities import (
    ENTITY_MODELS,
    Customer,
    Entity,
    EntityType,
    Mutation,
    Product,
    Sale,
    mutation_from_json,
)
from possync.core.exceptions import (
    AlreadyAppliedError,
    DatabaseError,
    DuplicateKeyError,
    NotFoundError,
    PermanentRemoteError,
    PosError,
    TransientRemoteError,
)
from possync.core.interfaces import IEntityRepository, IMutationRepository, IRemoteStore
from possync.core.services import (
    ConnectivityMonitor,
    EntityStore,
    MutationQueue,
    Reconciler,
)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch, tmp_path):
    """Isolate settings from the developer's environment."""
    monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "data"))
    reset_settings()
    yield
    reset_settings()


# ----------------------------------------------------------------------
# In-memory test doubles
# ----------------------------------------------------------------------


class InMemoryEntityRepository(IEntityRepository):
    """Entity repository that keeps JSON copies, like the SQLite one."""

    def __init__(self) -> None:
        self.rows: dict[EntityType, dict[str, str]] = {t: {} for t in EntityType}
        self.fail_writes = False

    def _check(self, operation: str) -> None:
        if self.fail_writes:
            raise DatabaseError(operation, "disk I/O error")

    async def load(self, entity_type: EntityType) -> list[Entity]:
        model = ENTITY_MODELS[entity_type]
        return [model.model_validate_json(data) for data in self.rows[entity_type].values()]

    async def save(self, entity_type: EntityType, entities: Sequence[Entity]) -> None:
        self._check("save")
        for entity in entities:
            self.rows[entity_type][str(entity.id)] = entity.model_dump_json()

    async def delete(self, entity_type: EntityType, entity_id: int | str) -> None:
        self._check("delete")
        self.rows[entity_type].pop(str(entity_id), None)

    async def replace_identifier(
        self, entity_type: EntityType, old_id: int, entity: Entity
    ) -> None:
        self._check("replace_identifier")
        rows = self.rows[entity_type]
        self.rows[entity_type] = {
            (str(entity.id) if key == str(old_id) else key): (
                entity.model_dump_json() if key == str(old_id) else value
            )
            for key, value in rows.items()
        }

    async def replace_all(self, entity_type: EntityType, entities: Sequence[Entity]) -> None:
        self._check("replace_all")
        self.rows[entity_type] = {str(e.id): e.model_dump_json() for e in entities}


class InMemoryMutationRepository(IMutationRepository):
    """Mutation repository with a never-reused sequence counter."""

    def __init__(self) -> None:
        self.rows: dict[str, tuple[int, str]] = {}
        self._last_sequence = 0

    async def load(self) -> list[Mutation]:
        ordered = sorted(self.rows.values())
        return [
            mutation_from_json(data).model_copy(update={"sequence": seq})
            for seq, data in ordered
        ]

    async def append(self, mutation: Mutation) -> int:
        self._last_sequence += 1
        self.rows[mutation.id] = (self._last_sequence, mutation.model_dump_json())
        return self._last_sequence

    async def remove(self, mutation_id: str) -> None:
        self.rows.pop(mutation_id, None)

    async def update(self, mutations: Sequence[Mutation]) -> None:
        for mutation in mutations:
            sequence, _ = self.rows[mutation.id]
            self.rows[mutation.id] = (sequence, mutation.model_dump_json())


class FakeRemoteStore(IRemoteStore):
    """
    Remote store backed by the reference in-memory backend.

    Domain errors are classified the way the HTTP store classifies statuses.
    Set ``offline`` to make every call fail transiently, or register a
    predicate with ``reject_when`` to reject matching calls permanently.
    """

    def __init__(self, backend: InMemoryBackend) -> None:
        self.backend = backend
        self.offline = False
        self.calls: list[tuple[str, Any]] = []
        self._rejections: list[Callable[[str, Any], bool]] = []

    def reject_when(self, predicate: Callable[[str, Any], bool]) -> None:
        self._rejections.append(predicate)

    def _call(self, operation: str, argument: Any, func: Callable[[], Any]) -> Any:
        if self.offline:
            raise TransientRemoteError(operation, "connection refused")
        self.calls.append((operation, argument))
        if any(predicate(operation, argument) for predicate in self._rejections):
            raise PermanentRemoteError(operation, "rejected by test", status_code=400)
        try:
            return func()
        except NotFoundError as e:
            if operation.startswith("delete"):
                raise AlreadyAppliedError(operation, "HTTP 404") from e
            raise PermanentRemoteError(operation, e.message, status_code=404) from e
        except DuplicateKeyError as e:
            if operation == "create_sale":
                raise AlreadyAppliedError(operation, "HTTP 409") from e
            raise PermanentRemoteError(operation, e.message, status_code=409) from e
        except PosError as e:
            raise PermanentRemoteError(operation, e.message, status_code=400) from e

    async def create_product(self, payload: dict[str, Any]) -> dict[str, Any]:
        product = self._call(
            "create_product", payload, lambda: self.backend.create_product(payload)
        )
        return product.model_dump(mode="json")

    async def update_product(self, product_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        product = self._call(
            "update_product",
            (product_id, payload),
            lambda: self.backend.update_product(product_id, payload),
        )
        return product.model_dump(mode="json")

    async def delete_or_zero_stock_product(self, product_id: int) -> None:
        self._call(
            "delete_product",
            product_id,
            lambda: self.backend.delete_or_zero_stock_product(product_id),
        )

    async def create_customer(self, payload: dict[str, Any]) -> dict[str, Any]:
        customer = self._call(
            "create_customer", payload, lambda: self.backend.create_customer(payload)
        )
        return customer.model_dump(mode="json")

    async def update_customer(self, customer_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        customer = self._call(
            "update_customer",
            (customer_id, payload),
            lambda: self.backend.update_customer(customer_id, payload),
        )
        return customer.model_dump(mode="json")

    async def delete_customer(self, customer_id: int) -> None:
        self._call(
            "delete_customer", customer_id, lambda: self.backend.delete_customer(customer_id)
        )

    async def create_sale(self, payload: dict[str, Any]) -> dict[str, Any]:
        sale = self._call(
            "create_sale",
            payload,
            lambda: self.backend.create_sale(Sale.model_validate(payload)),
        )
        return sale.model_dump(mode="json")

    async def list_products(self) -> list[Product]:
        return self._call("list_products", None, self.backend.list_products)

    async def list_customers(self) -> list[Customer]:
        return self._call("list_customers", None, self.backend.list_customers)

    async def list_sales(self) -> list[Sale]:
        return self._call("list_sales", None, self.backend.list_sales)

    async def check_health(self) -> bool:
        return not self.offline


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def remote(backend: InMemoryBackend) -> FakeRemoteStore:
    return FakeRemoteStore(backend)


@pytest.fixture
def monitor() -> ConnectivityMonitor:
    """Monitor without debounce, starting offline."""
    return ConnectivityMonitor(initial=False, debounce_seconds=0)


@pytest.fixture
def entity_repository() -> InMemoryEntityRepository:
    return InMemoryEntityRepository()


@pytest.fixture
def mutation_repository() -> InMemoryMutationRepository:
    return InMemoryMutationRepository()


@pytest.fixture
def queue(mutation_repository: InMemoryMutationRepository) -> MutationQueue:
    return MutationQueue(mutation_repository)


@pytest.fixture
def reconciler(
    queue: MutationQueue, remote: FakeRemoteStore, monitor: ConnectivityMonitor
) -> Reconciler:
    return Reconciler(queue, remote, monitor)


@pytest.fixture
def entity_store(
    entity_repository: InMemoryEntityRepository, reconciler: Reconciler
) -> EntityStore:
    return EntityStore(entity_repository, reconciler)


@pytest.fixture
def tea() -> dict[str, Any]:
    """Payload for the product used throughout the offline scenarios."""
    return {"name": "Tea", "barcode": "T1", "price": 3.99, "stock": 10, "category": "Drinks"}


@pytest.fixture
async def api_client(backend: InMemoryBackend) -> AsyncGenerator[AsyncClient, None]:
    """Async client bound to the reference backend app."""
    transport = ASGITransport(app=create_app(backend))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
