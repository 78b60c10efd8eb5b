"""Order API client - HTTP access to the café menu and order endpoints."""

import asyncio
import logging
from typing import Any

import httpx
import pydantic
from tableside_schemas import ErrorBody, MenuItem, Order, OrderPayload, OrderStatus

from apps.web.ordering.exceptions import (
    HttpError,
    MalformedResponse,
    NetworkUnavailable,
    RequestTimeout,
)

logger = logging.getLogger(__name__)


class OrderAPIClient:
    """
    Client for the café order/menu API.

    Endpoints:
    - GET /api/menu
    - GET /api/orders?status=pending
    - POST /api/orders
    - PATCH /api/orders/{order_id}

    Every failure is raised as an ``OrderingAPIError`` subclass so callers
    can tell transport errors, timeouts and HTTP errors apart in logs.
    """

    MENU_PATH = "/api/menu"
    ORDERS_PATH = "/api/orders"

    # Create/update calls are aborted after this many seconds
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        base_url: str = "",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """
        Initialize the API client.

        Args:
            base_url: API base URL; trailing slashes are stripped.
            http_client: Optional HTTP client for dependency injection (testing).
            timeout: Client-side timeout in seconds for every request.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            RequestTimeout: If the whole call did not finish within the timeout.
            NetworkUnavailable: If the request could not be sent.
            HttpError: If the API answered with a non-2xx status.
            MalformedResponse: If a 2xx body is not JSON.
        """
        url = self._url(path)
        try:
            # httpx limits each phase; this bounds the whole call
            async with asyncio.timeout(self.timeout):
                response = await self._client.request(
                    method, url, timeout=self.timeout, **kwargs
                )
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning(
                "RequestTimeout: %s %s after %.0fs", method, url, self.timeout
            )
            raise RequestTimeout(
                f"Request timed out after {self.timeout:.0f} seconds",
                timeout=self.timeout,
            ) from e
        except httpx.RequestError as e:
            logger.warning("NetworkUnavailable: %s %s: %s", method, url, e)
            raise NetworkUnavailable(f"Network unavailable: {e}") from e

        if response.is_error:
            message = self._error_message(response)
            logger.warning(
                "HttpError: %s %s returned %d: %s",
                method,
                url,
                response.status_code,
                message,
            )
            raise HttpError(
                message,
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(
                f"Invalid JSON from {path}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

    def _error_message(self, response: httpx.Response) -> str:
        """Server-provided error text, else an HTTP status message."""
        try:
            body = ErrorBody.model_validate(response.json())
        except (ValueError, pydantic.ValidationError):
            body = ErrorBody()
        return body.error or f"HTTP {response.status_code}"

    # =========================================================================
    # Menu
    # =========================================================================

    async def get_menu(self) -> list[MenuItem]:
        """
        Fetch the full menu.

        Returns:
            Menu items in server order.

        Raises:
            OrderingAPIError: If the request fails or the body is malformed.
        """
        data = await self._request("GET", self.MENU_PATH)
        if not isinstance(data, list):
            raise MalformedResponse("Menu response is not a list", status_code=200)
        try:
            return [MenuItem.model_validate(item) for item in data]
        except pydantic.ValidationError as e:
            raise MalformedResponse(f"Invalid menu item: {e}", status_code=200) from e

    # =========================================================================
    # Orders
    # =========================================================================

    async def list_orders(
        self, status: str | None = None, table_id: int | None = None
    ) -> list[Order]:
        """
        List orders, optionally filtered by status and table.

        The table filter is sent to the API and re-applied client-side since
        not every backend honours it.
        """
        params: dict[str, Any] = {}
        if status:
            params["status"] = status
        if table_id is not None:
            params["table_id"] = table_id

        data = await self._request("GET", self.ORDERS_PATH, params=params)
        if not isinstance(data, list):
            raise MalformedResponse("Orders response is not a list", status_code=200)
        try:
            orders = [Order.model_validate(order) for order in data]
        except pydantic.ValidationError as e:
            raise MalformedResponse(f"Invalid order: {e}", status_code=200) from e

        if table_id is not None:
            orders = [order for order in orders if order.table_id == table_id]
        return orders

    async def find_pending_order(self, table_id: int) -> Order | None:
        """Return the most recently created pending order for a table."""
        orders = await self.list_orders(
            status=OrderStatus.PENDING.value, table_id=table_id
        )
        pending = [order for order in orders if order.is_pending]
        if not pending:
            return None
        # Orders without a timestamp sort last
        pending.sort(
            key=lambda order: order.created_at.timestamp() if order.created_at else 0,
            reverse=True,
        )
        return pending[0]

    async def create_order(
        self, payload: OrderPayload, idempotency_key: str | None = None
    ) -> Order:
        """
        Create a new order (``POST /api/orders``).

        Raises:
            MalformedResponse: If the response carries no order id.
            OrderingAPIError: If the request fails.
        """
        data = await self._request(
            "POST",
            self.ORDERS_PATH,
            json=payload.to_json(),
            headers=self._headers(idempotency_key),
        )
        return self._parse_order(data)

    async def update_order(
        self,
        order_id: str,
        payload: OrderPayload,
        idempotency_key: str | None = None,
    ) -> Order:
        """
        Replace the items (and notes) of an existing order
        (``PATCH /api/orders/{order_id}``).

        Raises:
            MalformedResponse: If the response carries no order id.
            OrderingAPIError: If the request fails.
        """
        body = payload.to_json()
        body.pop("table_id", None)
        data = await self._request(
            "PATCH",
            f"{self.ORDERS_PATH}/{order_id}",
            json=body,
            headers=self._headers(idempotency_key),
        )
        return self._parse_order(data)

    def _headers(self, idempotency_key: str | None) -> dict[str, str]:
        if idempotency_key:
            return {"Idempotency-Key": idempotency_key}
        return {}

    def _parse_order(self, data: Any) -> Order:
        """Validate an order body; a missing id is a malformed response."""
        if not isinstance(data, dict) or not data.get("id"):
            raise MalformedResponse("Order response has no id", status_code=200)
        try:
            return Order.model_validate(data)
        except pydantic.ValidationError as e:
            raise MalformedResponse(f"Invalid order: {e}", status_code=200) from e
