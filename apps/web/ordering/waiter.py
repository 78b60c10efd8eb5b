"""
Waiter desk - staff place and amend orders on behalf of tables.

Unlike the guest flow there is no confirmation dialog, and submissions are
retried automatically (3 attempts, 1 second apart by default) before the
failure is shown.
"""

import logging
from typing import Any

import pydantic
from tableside_schemas import Order, OrderStatus

from apps.web.ordering.client import OrderAPIClient
from apps.web.ordering.exceptions import ValidationError
from apps.web.ordering.notifications import Notifier
from apps.web.ordering.retry import WAITER_RETRY, RetryPolicy
from apps.web.ordering.session import (
    DEFAULT_TABLE_COUNT,
    InMemorySessionStore,
    OrderSession,
)

logger = logging.getLogger(__name__)


class WaiterDesk:
    """Entry point for the staff ordering view."""

    def __init__(
        self,
        api: OrderAPIClient,
        retry_policy: RetryPolicy = WAITER_RETRY,
        table_count: int = DEFAULT_TABLE_COUNT,
        notifier: Notifier | None = None,
    ) -> None:
        self.api = api
        self.retry_policy = retry_policy
        self.table_count = table_count
        self.notifier = notifier or Notifier()
        self.editing_order_id: str | None = None

    async def pending_orders(self, table_id: int | None = None) -> list[Order]:
        """
        Pending orders, optionally for one table.

        Raises:
            OrderingAPIError: If the orders could not be loaded.
        """
        return await self.api.list_orders(
            status=OrderStatus.PENDING.value, table_id=table_id
        )

    def _session(self, table_id: int | str, note: str | None) -> OrderSession:
        # Staff sessions are not tied to a browser, nothing is persisted
        return OrderSession(
            self.api,
            table_id,
            store=InMemorySessionStore(),
            notifier=self.notifier,
            retry_policy=self.retry_policy,
            table_count=self.table_count,
            note=note,
        )

    def take_order(self, table_id: int | str, note: str | None = None) -> OrderSession:
        """Start a NEW-mode session for a table."""
        self.editing_order_id = None
        return self._session(table_id, note)

    def start_editing(self, order: Order | dict[str, Any]) -> OrderSession:
        """
        Start an APPEND-mode session seeded with an existing order.

        Raises:
            ValidationError: If the order has no id, items or table.
        """
        if not isinstance(order, Order):
            try:
                order = Order.model_validate(order)
            except pydantic.ValidationError as e:
                logger.error("Invalid order data: %s", e)
                raise ValidationError(
                    "Cannot edit order: Invalid order data.", field="order"
                ) from e

        if not order.id or not order.items or not order.table_id:
            logger.error("Invalid order data: %r", order)
            raise ValidationError(
                "Cannot edit order: Invalid order data.", field="order"
            )

        session = self._session(order.table_id, order.notes)
        session.resume(order.id, order.items)
        session.cart_open = True
        self.editing_order_id = order.id
        return session

    async def submit(self, session: OrderSession) -> Order | None:
        """
        Validate and send a session in one step.

        Returns:
            The saved order, or None if validation or every attempt failed.
        """
        if session.checkout() is None:
            return None
        order = await session.confirm()
        if order is not None and order.id == self.editing_order_id:
            self.editing_order_id = None
        return order
