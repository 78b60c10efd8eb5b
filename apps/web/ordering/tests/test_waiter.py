"""Tests for the waiter desk and its automatic retry."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from apps.web.ordering.exceptions import HttpError, NetworkUnavailable, ValidationError
from apps.web.ordering.retry import RetryPolicy, call_with_retry
from apps.web.ordering.session import OrderMode, SessionState
from apps.web.ordering.tests.factories import (
    CartLineFactory,
    MenuItemFactory,
    OrderFactory,
    order_json,
)
from apps.web.ordering.waiter import WaiterDesk


@pytest.fixture
def desk(api, notifier) -> WaiterDesk:
    return WaiterDesk(api, notifier=notifier)


@pytest.fixture
def no_sleep():
    """Skip real backoff delays."""
    with patch(
        "apps.web.ordering.retry.asyncio.sleep", new_callable=AsyncMock
    ) as sleep:
        yield sleep


class TestRetryPolicy:
    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)

    def test_rejects_negative_backoff(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=2, backoff=-1)

    @pytest.mark.asyncio
    async def test_returns_first_success(self, no_sleep):
        operation = AsyncMock(return_value="ok")

        policy = RetryPolicy(max_attempts=3, backoff=1.0)
        result = await call_with_retry(operation, policy)

        assert result == "ok"
        assert operation.await_count == 1
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_raises_last_error_when_exhausted(self, no_sleep):
        operation = AsyncMock(
            side_effect=[NetworkUnavailable("down"), HttpError("boom", status_code=500)]
        )

        with pytest.raises(HttpError):
            await call_with_retry(operation, RetryPolicy(max_attempts=2, backoff=1.0))

        assert operation.await_count == 2
        no_sleep.assert_awaited_once_with(1.0)

    @pytest.mark.asyncio
    async def test_does_not_retry_other_errors(self, no_sleep):
        operation = AsyncMock(side_effect=KeyError("bug"))

        with pytest.raises(KeyError):
            await call_with_retry(operation, RetryPolicy(max_attempts=3))

        assert operation.await_count == 1


class TestTakeOrder:
    """Tests for staff-placed orders."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_succeeds_on_third_attempt(self, desk, no_sleep):
        route = respx.post(f"{desk.api.base_url}/api/orders").mock(
            side_effect=[
                httpx.Response(500, json={"error": "Database busy"}),
                httpx.Response(502),
                httpx.Response(201, json={"id": "ord_77"}),
            ]
        )
        session = desk.take_order(12, note="No onions")
        session.cart.add_item(MenuItemFactory(id=1))

        order = await desk.submit(session)

        assert order.id == "ord_77"
        assert session.state == SessionState.SUCCEEDED
        assert route.call_count == 3
        assert no_sleep.await_count == 2
        no_sleep.assert_awaited_with(1.0)
        body = json.loads(route.calls.last.request.content)
        assert body["table_id"] == 12
        assert body["notes"] == "No onions"
        assert len(session.cart) == 0

    @pytest.mark.asyncio
    @respx.mock
    async def test_fails_after_three_attempts(self, desk, notifier, no_sleep):
        route = respx.post(f"{desk.api.base_url}/api/orders").mock(
            return_value=httpx.Response(503)
        )
        session = desk.take_order(3)
        session.cart.add_item(MenuItemFactory())

        order = await desk.submit(session)

        assert order is None
        assert route.call_count == 3
        assert session.state == SessionState.FAILED
        assert notifier.current.message == (
            "Failed to place order after 3 attempts: HTTP 503"
        )
        assert len(session.cart) == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_retries_reuse_idempotency_key(self, desk, no_sleep):
        route = respx.post(f"{desk.api.base_url}/api/orders").mock(
            side_effect=[
                httpx.ConnectTimeout("slow"),
                httpx.Response(201, json={"id": "ord_1"}),
            ]
        )
        session = desk.take_order(3)
        session.cart.add_item(MenuItemFactory())

        await desk.submit(session)

        keys = {call.request.headers["Idempotency-Key"] for call in route.calls}
        assert len(keys) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("table_id", ["", "0", 31, "seven"])
    async def test_invalid_table_never_submits(self, desk, table_id):
        session = desk.take_order(table_id)
        session.cart.add_item(MenuItemFactory())

        with respx.mock:
            order = await desk.submit(session)

        assert order is None
        assert session.state == SessionState.BROWSING
        assert "table_id" in session.field_errors

    @pytest.mark.asyncio
    async def test_empty_cart_never_submits(self, desk, notifier):
        session = desk.take_order(4)

        with respx.mock:
            order = await desk.submit(session)

        assert order is None
        assert notifier.current.message == "Cart is empty"


class TestEditing:
    """Tests for amending pending orders."""

    def test_start_editing_seeds_append_session(self, desk):
        order = OrderFactory(
            id="ord_4",
            table_id=8,
            notes="Extra spicy",
            items=[CartLineFactory(item_id=2, quantity=2)],
        )

        session = desk.start_editing(order)

        assert session.mode == OrderMode.APPEND
        assert session.order_id == "ord_4"
        assert session.table_id == 8
        assert session.note == "Extra spicy"
        assert session.cart_open is True
        assert [(line.item_id, line.quantity) for line in session.cart] == [(2, 2)]
        assert desk.editing_order_id == "ord_4"

    def test_start_editing_accepts_raw_payload(self, desk):
        session = desk.start_editing(order_json(OrderFactory(id="ord_5")))

        assert session.order_id == "ord_5"

    @pytest.mark.parametrize(
        "payload",
        [
            {"table_id": 3, "items": [{"item_id": 1, "name": "Tea", "price": 20}]},
            {"id": "ord_1", "table_id": 3, "items": []},
            {"id": "ord_1", "items": [{"item_id": 1, "name": "Tea", "price": 20}]},
        ],
    )
    def test_start_editing_rejects_invalid_order(self, desk, payload):
        with pytest.raises(ValidationError) as exc_info:
            desk.start_editing(payload)

        assert exc_info.value.message == "Cannot edit order: Invalid order data."

    @pytest.mark.asyncio
    @respx.mock
    async def test_save_edited_order(self, desk, no_sleep):
        update = respx.patch(f"{desk.api.base_url}/api/orders/ord_4").mock(
            return_value=httpx.Response(200, json={"id": "ord_4"})
        )
        session = desk.start_editing(OrderFactory(id="ord_4", table_id=8, notes="Hot"))
        session.cart.add_item(MenuItemFactory(id="special"))

        order = await desk.submit(session)

        assert order.id == "ord_4"
        body = json.loads(update.calls.last.request.content)
        assert body["notes"] == "Hot"
        assert len(body["items"]) == 2
        assert desk.editing_order_id is None


class TestPendingOrders:
    @pytest.mark.asyncio
    @respx.mock
    async def test_lists_pending_orders(self, desk):
        orders = [OrderFactory(table_id=1), OrderFactory(table_id=2)]
        route = respx.get(f"{desk.api.base_url}/api/orders").mock(
            return_value=httpx.Response(200, json=[order_json(o) for o in orders])
        )

        result = await desk.pending_orders()

        assert [order.id for order in result] == [o.id for o in orders]
        assert route.calls.last.request.url.params["status"] == "pending"

    @pytest.mark.asyncio
    @respx.mock
    async def test_filters_by_table(self, desk):
        orders = [OrderFactory(table_id=1), OrderFactory(table_id=2)]
        respx.get(f"{desk.api.base_url}/api/orders").mock(
            return_value=httpx.Response(200, json=[order_json(o) for o in orders])
        )

        result = await desk.pending_orders(table_id=2)

        assert [order.table_id for order in result] == [2]
