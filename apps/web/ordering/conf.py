"""Build ordering components from Django settings."""

from collections.abc import Callable
from typing import Any

from django.conf import settings

from apps.web.ordering.access import DEFAULT_CAFE_PREFIXES, NetworkAccessGate
from apps.web.ordering.client import OrderAPIClient
from apps.web.ordering.menu import MenuSource
from apps.web.ordering.retry import RetryPolicy
from apps.web.ordering.session import DEFAULT_TABLE_COUNT, SessionStore
from apps.web.ordering.table import TablePage
from apps.web.ordering.waiter import WaiterDesk


def get_api_client() -> OrderAPIClient:
    """Order API client pointed at ORDERING_API_URL."""
    return OrderAPIClient(
        base_url=getattr(settings, "ORDERING_API_URL", ""),
        timeout=getattr(
            settings, "ORDER_REQUEST_TIMEOUT", OrderAPIClient.DEFAULT_TIMEOUT
        ),
    )


def get_access_gate() -> NetworkAccessGate:
    return NetworkAccessGate(
        allowed_prefixes=getattr(
            settings, "CAFE_NETWORK_PREFIXES", DEFAULT_CAFE_PREFIXES
        ),
        lookup_url=getattr(settings, "IP_LOOKUP_URL", NetworkAccessGate.LOOKUP_URL),
    )


def get_menu_source(api: OrderAPIClient) -> MenuSource:
    return MenuSource(
        api, refresh_interval=getattr(settings, "MENU_REFRESH_INTERVAL", 0)
    )


def get_waiter_retry_policy() -> RetryPolicy:
    return RetryPolicy(
        max_attempts=getattr(settings, "WAITER_MAX_ATTEMPTS", 3),
        backoff=getattr(settings, "WAITER_RETRY_BACKOFF", 1.0),
    )


def get_table_count() -> int:
    return getattr(settings, "TABLE_COUNT", DEFAULT_TABLE_COUNT)


def build_table_page(
    table_id: int | str,
    store: SessionStore,
    navigate: Callable[[str], Any] | None = None,
) -> TablePage:
    """Guest page for a table, configured from settings."""
    api = get_api_client()
    return TablePage(
        table_id,
        api,
        get_access_gate(),
        store,
        menu=get_menu_source(api),
        navigate=navigate,
        table_count=get_table_count(),
    )


def build_waiter_desk() -> WaiterDesk:
    """Staff desk, configured from settings."""
    return WaiterDesk(
        get_api_client(),
        retry_policy=get_waiter_retry_policy(),
        table_count=get_table_count(),
    )
