"""
REST implementation of the remote store.

Maps HTTP outcomes onto the remote error taxonomy:

- connection failures, timeouts, 408, 429 and 5xx are transient
- 409 on sale create and 404 on delete mean the change is already applied
- any other 4xx is a permanent rejection
"""

from typing import Any

import httpx
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from possync.config import get_logger, get_settings
from possync.core.entities import Customer, Product, Sale
from possync.core.exceptions import (
    AlreadyAppliedError,
    PermanentRemoteError,
    TransientRemoteError,
)
from possync.core.interfaces import IRemoteStore

logger = get_logger(__name__)

TRANSIENT_STATUSES = {408, 425, 429}

# Only errors where the request never reached the server are retried in place;
# a read timeout may hide an applied write, so it goes back to the queue instead.
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


class HttpRemoteStore(IRemoteStore):
    """
    httpx client for the POS backend REST API.

    Connection errors are retried with exponential backoff before being
    reported as ``TransientRemoteError``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
        health_timeout: float | None = None,
    ):
        all_settings = get_settings()
        settings = all_settings.remote
        self.base_url = base_url or settings.base_url
        self.timeout = timeout if timeout is not None else settings.timeout
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.retry_delay = retry_delay if retry_delay is not None else settings.retry_delay
        self.retry_multiplier = settings.retry_multiplier
        self.health_timeout = (
            health_timeout
            if health_timeout is not None
            else all_settings.connectivity.probe_timeout
        )

        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_retry_decorator(self) -> Any:
        return retry(
            stop=stop_after_attempt(max(1, self.max_retries)),
            wait=wait_exponential(
                multiplier=self.retry_delay,
                min=self.retry_delay,
                max=self.retry_delay * (self.retry_multiplier**3),
            ),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=self._log_retry,
            reraise=True,
        )

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        logger.warning(
            "remote_retry",
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        json: dict[str, Any] | None = None,
        already_applied_status: int | None = None,
    ) -> Any:
        """Send a request and classify the outcome."""

        async def _send() -> httpx.Response:
            return await self.client.request(method, path, json=json)

        try:
            response = await self._get_retry_decorator()(_send)()
        except httpx.TransportError as e:
            raise TransientRemoteError(operation, f"{type(e).__name__}: {e}") from e

        status = response.status_code
        if status == already_applied_status:
            raise AlreadyAppliedError(operation, f"HTTP {status}")
        if status in TRANSIENT_STATUSES or status >= 500:
            raise TransientRemoteError(operation, f"HTTP {status}")
        if status >= 400:
            raise PermanentRemoteError(operation, self._error_detail(response), status_code=status)

        logger.debug("remote_request", method=method, path=path, status=status)
        if status == 204 or not response.content:
            return {}
        return response.json()

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("message") or body.get("detail") or body)[:200]
        return str(body)[:200]

    # Products

    async def create_product(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/products", "create product", json=payload)

    async def update_product(self, product_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "PUT", f"/products/{product_id}", "update product", json=payload
        )

    async def delete_or_zero_stock_product(self, product_id: int) -> None:
        await self._request(
            "DELETE",
            f"/products/{product_id}",
            "delete product",
            already_applied_status=404,
        )

    # Customers

    async def create_customer(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/customers", "create customer", json=payload)

    async def update_customer(self, customer_id: int, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "PUT", f"/customers/{customer_id}", "update customer", json=payload
        )

    async def delete_customer(self, customer_id: int) -> None:
        await self._request(
            "DELETE",
            f"/customers/{customer_id}",
            "delete customer",
            already_applied_status=404,
        )

    # Sales

    async def create_sale(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "POST", "/sales", "create sale", json=payload, already_applied_status=409
        )

    # Initial load

    async def list_products(self) -> list[Product]:
        data = await self._request("GET", "/products", "list products")
        return [Product.model_validate(item) for item in data]

    async def list_customers(self) -> list[Customer]:
        data = await self._request("GET", "/customers", "list customers")
        return [Customer.model_validate(item) for item in data]

    async def list_sales(self) -> list[Sale]:
        data = await self._request("GET", "/sales", "list sales")
        return [Sale.model_validate(item) for item in data]

    async def check_health(self) -> bool:
        try:
            response = await self.client.get("/health", timeout=self.health_timeout)
        except httpx.HTTPError as e:
            logger.debug("remote_health_failed", error=str(e))
            return False
        return response.status_code == 200
