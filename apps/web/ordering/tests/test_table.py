"""Tests for the table page wiring and settings factories."""

import httpx
import pytest
import respx

from apps.web.ordering.access import NetworkAccessGate
from apps.web.ordering.conf import (
    build_table_page,
    build_waiter_desk,
    get_api_client,
    get_menu_source,
)
from apps.web.ordering.exceptions import AccessDenied
from apps.web.ordering.session import OrderMode
from apps.web.ordering.table import TablePage
from apps.web.ordering.tests.factories import OrderFactory, order_json

LOOKUP_URL = "https://ip.lookup.test/"

MENU = [
    {"id": 1, "name": "Tea", "price": 20.0, "category": "Drinks"},
    {"id": 2, "name": "Toast", "price": 35.0, "category": "Snacks"},
]


@pytest.fixture
def navigations() -> list[str]:
    return []


@pytest.fixture
def page(api, store, notifier, navigations) -> TablePage:
    gate = NetworkAccessGate(allowed_prefixes=["58.84"], lookup_url=LOOKUP_URL)
    return TablePage(
        5, api, gate, store, notifier=notifier, navigate=navigations.append
    )


class TestOpen:
    """Tests for TablePage.open."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_denied_client_sees_gate_only(self, page):
        respx.get(LOOKUP_URL).mock(
            return_value=httpx.Response(200, json={"ip": "1.2.3.4"})
        )
        menu = respx.get(f"{page.session.api.base_url}/api/menu")

        decision = await page.open()

        assert decision.status == "denied"
        assert isinstance(page.access_denied, AccessDenied)
        assert not menu.called
        await page.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_allowed_client_loads_menu_and_session(self, page, navigations):
        base = page.session.api.base_url
        respx.get(LOOKUP_URL).mock(
            return_value=httpx.Response(200, json={"ip": "58.84.3.3"})
        )
        respx.get(f"{base}/api/menu").mock(return_value=httpx.Response(200, json=MENU))
        respx.get(f"{base}/api/orders").mock(return_value=httpx.Response(200, json=[]))

        decision = await page.open()

        assert decision.allowed is True
        assert page.access_denied is None
        assert [item.name for item in page.menu.items] == ["Tea", "Toast"]
        assert page.session.mode == OrderMode.NEW
        assert navigations == []
        await page.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_pending_order_redirects(self, page, navigations):
        base = page.session.api.base_url
        respx.get(LOOKUP_URL).mock(
            return_value=httpx.Response(200, json={"ip": "58.84.3.3"})
        )
        respx.get(f"{base}/api/menu").mock(return_value=httpx.Response(200, json=MENU))
        respx.get(f"{base}/api/orders").mock(
            return_value=httpx.Response(
                200, json=[order_json(OrderFactory(id="ord_2", table_id=5))]
            )
        )

        await page.open()

        assert page.session.mode == OrderMode.APPEND
        assert navigations == ["/order/ord_2"]
        await page.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_menu_failure_is_notified(self, page, notifier):
        base = page.session.api.base_url
        respx.get(LOOKUP_URL).mock(
            return_value=httpx.Response(200, json={"ip": "58.84.3.3"})
        )
        respx.get(f"{base}/api/menu").mock(return_value=httpx.Response(500))
        respx.get(f"{base}/api/orders").mock(return_value=httpx.Response(200, json=[]))

        await page.open()

        assert notifier.current.message == "Failed to load menu. Please try again."
        await page.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_retry_access_after_reconnecting(self, page):
        base = page.session.api.base_url
        respx.get(LOOKUP_URL).mock(
            side_effect=[
                httpx.Response(200, json={"ip": "1.2.3.4"}),
                httpx.Response(200, json={"ip": "58.84.3.3"}),
            ]
        )
        respx.get(f"{base}/api/menu").mock(return_value=httpx.Response(200, json=MENU))
        respx.get(f"{base}/api/orders").mock(return_value=httpx.Response(200, json=[]))

        await page.open()
        decision = await page.retry_access()

        assert decision.allowed is True
        assert page.access_denied is None
        await page.close()


class TestAddToCart:
    @pytest.mark.asyncio
    @respx.mock
    async def test_add_opens_cart_and_flags_item(self, page):
        base = page.session.api.base_url
        respx.get(f"{base}/api/menu").mock(return_value=httpx.Response(200, json=MENU))
        tea = (await page.menu.get_menu())[0]

        page.add_to_cart(tea)

        assert page.session.cart_open is True
        assert page.added.is_added(1)
        assert page.session.cart is page.cart
        assert page.cart.total_quantity() == 1
        await page.close()


class TestConf:
    """Tests for building components from settings."""

    def test_api_client_from_settings(self, settings):
        settings.ORDERING_API_URL = "https://orders.cafe.test/"
        settings.ORDER_REQUEST_TIMEOUT = 12.0

        client = get_api_client()

        assert client.base_url == "https://orders.cafe.test"
        assert client.timeout == 12.0

    def test_menu_source_from_settings(self, settings, api):
        settings.MENU_REFRESH_INTERVAL = 0

        assert get_menu_source(api).refresh_interval is None

        settings.MENU_REFRESH_INTERVAL = 30

        assert get_menu_source(api).refresh_interval == 30

    def test_waiter_desk_from_settings(self, settings):
        settings.WAITER_MAX_ATTEMPTS = 5
        settings.WAITER_RETRY_BACKOFF = 0.5
        settings.TABLE_COUNT = 40

        desk = build_waiter_desk()

        assert desk.retry_policy.max_attempts == 5
        assert desk.retry_policy.backoff == 0.5
        assert desk.table_count == 40

    def test_table_page_from_settings(self, settings, store):
        settings.CAFE_NETWORK_PREFIXES = ["10.1"]
        settings.TABLE_COUNT = 12

        page = build_table_page(3, store)

        assert page.gate.allowed_prefixes == ("10.1",)
        assert page.session.table_count == 12
