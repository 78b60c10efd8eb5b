"""
Pytest configuration for Django app tests.
"""

import pytest

from apps.web.ordering.client import OrderAPIClient
from apps.web.ordering.notifications import Notifier
from apps.web.ordering.session import InMemorySessionStore

API_URL = "https://api.cafe.test"


@pytest.fixture
def api() -> OrderAPIClient:
    """Order API client pointed at the mocked API."""
    return OrderAPIClient(base_url=f"{API_URL}/")


@pytest.fixture
def store() -> InMemorySessionStore:
    """Empty client-side session store."""
    return InMemorySessionStore()


@pytest.fixture
def notifier() -> Notifier:
    """Notifier without auto-dismiss so tests can inspect the last message."""
    return Notifier(auto_dismiss=None)
