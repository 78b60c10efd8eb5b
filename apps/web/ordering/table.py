"""
Table page - wires the gate, menu, cart and order session together.

Gate -> (if allowed) menu + pending-order lookup -> cart edits -> checkout.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from tableside_schemas import AccessDecision, MenuItem

from apps.web.ordering.access import NetworkAccessGate
from apps.web.ordering.cart import AddedAcknowledgements, Cart
from apps.web.ordering.client import OrderAPIClient
from apps.web.ordering.exceptions import AccessDenied, FetchError
from apps.web.ordering.menu import MenuSource
from apps.web.ordering.notifications import Notifier
from apps.web.ordering.session import DEFAULT_TABLE_COUNT, OrderSession, SessionStore

logger = logging.getLogger(__name__)


class TablePage:
    """
    Guest ordering page for one table.

    A denied network check does not raise: it leaves ``access_denied`` set
    so the view can show the gate screen with a retry button.
    """

    def __init__(
        self,
        table_id: int | str,
        api: OrderAPIClient,
        gate: NetworkAccessGate,
        store: SessionStore,
        menu: MenuSource | None = None,
        notifier: Notifier | None = None,
        navigate: Callable[[str], Any] | None = None,
        table_count: int = DEFAULT_TABLE_COUNT,
    ) -> None:
        self.gate = gate
        self.menu = menu or MenuSource(api)
        self.notifier = notifier or Notifier()
        self.cart = Cart()
        self.added = AddedAcknowledgements()
        self.cart.observe(self.added.mark)
        self.session = OrderSession(
            api,
            table_id,
            store,
            cart=self.cart,
            notifier=self.notifier,
            navigate=navigate,
            table_count=table_count,
        )
        self.access_denied: AccessDenied | None = None
        self._unsubscribe = self.menu.subscribe(self._on_menu_updated)

    @property
    def access(self) -> AccessDecision:
        return self.gate.decision

    async def open(self) -> AccessDecision:
        """Run the network check, then load the menu and pending order."""
        decision = await self.gate.check_access()
        if not decision.allowed:
            self.access_denied = AccessDenied(
                "Please connect to the café Wi-Fi to access the menu."
            )
            return decision

        self.access_denied = None
        self.menu.start()
        await asyncio.gather(self._load_menu(), self.session.load())
        return decision

    async def retry_access(self) -> AccessDecision:
        """Gate screen retry action."""
        return await self.open()

    async def _load_menu(self) -> None:
        try:
            await self.menu.get_menu()
        except FetchError:
            self.notifier.error("Failed to load menu. Please try again.")

    def _on_menu_updated(self, items: list[MenuItem]) -> None:
        self.notifier.info("Menu updated!")

    def add_to_cart(self, item: MenuItem) -> None:
        self.cart.add_item(item)
        self.session.cart_open = True
        logger.info(
            "Item added: %s (%s) at table %s", item.id, item.name, self.session.table_id
        )

    async def close(self) -> None:
        """Tear down timers and background refreshes."""
        self._unsubscribe()
        self.added.cancel()
        await self.menu.stop()
        await self.gate.close()
        await self.session.api.close()
