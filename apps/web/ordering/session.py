"""
Order session state machine.

Coordinates the local cart with the remote order resource:

    BROWSING -> CONFIRMING -> SUBMITTING -> SUCCEEDED | FAILED
    CONFIRMING -> BROWSING   (cancel)
    FAILED -> CONFIRMING     (retry)
    SUCCEEDED -> BROWSING    (new session)

A session is either NEW (the next submission creates an order) or APPEND
(the next submission updates an existing pending order).
"""

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol

import pydantic
from tableside_schemas import AppendOrderState, CartLine, Order, OrderPayload

from apps.web.ordering.cart import Cart
from apps.web.ordering.client import OrderAPIClient
from apps.web.ordering.exceptions import (
    InvalidTransition,
    OrderingAPIError,
    ValidationError,
)
from apps.web.ordering.notifications import Notifier
from apps.web.ordering.retry import NO_RETRY, RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

DEFAULT_TABLE_COUNT = 30

ORDER_ID_KEY = "orderId"
APPEND_ORDER_KEY = "appendOrder"


# =============================================================================
# Client-side session storage
# =============================================================================


class SessionStore(Protocol):
    """Key-value storage that survives a reload (browser local storage)."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self, key: str) -> None: ...


class InMemorySessionStore:
    """Dict-backed SessionStore for tests and server-side use."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def clear(self, key: str) -> None:
        self._data.pop(key, None)


def read_append_order(store: SessionStore) -> AppendOrderState | None:
    """Load the persisted order-being-edited, discarding corrupt entries."""
    raw = store.get(APPEND_ORDER_KEY)
    if not raw:
        return None
    try:
        return AppendOrderState.model_validate_json(raw)
    except pydantic.ValidationError as e:
        logger.warning("Discarding unreadable %s entry: %s", APPEND_ORDER_KEY, e)
        store.clear(APPEND_ORDER_KEY)
        return None


def write_append_order(
    store: SessionStore, order_id: str, items: Iterable[CartLine]
) -> None:
    """
    Persist an order so the table page resumes it in APPEND mode.

    Written by the order status view ("add more items") and by
    ``OrderSession.checkout`` so cart edits survive a reload.
    """
    state = AppendOrderState(order_id=order_id, items=list(items))
    store.set(APPEND_ORDER_KEY, state.model_dump_json(by_alias=True))


# =============================================================================
# State
# =============================================================================


class SessionState(str, Enum):
    BROWSING = "browsing"
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OrderMode(str, Enum):
    NEW = "new"
    APPEND = "append"


TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.BROWSING: frozenset({SessionState.CONFIRMING}),
    SessionState.CONFIRMING: frozenset(
        {SessionState.SUBMITTING, SessionState.BROWSING}
    ),
    SessionState.SUBMITTING: frozenset({SessionState.SUCCEEDED, SessionState.FAILED}),
    SessionState.FAILED: frozenset({SessionState.CONFIRMING}),
    SessionState.SUCCEEDED: frozenset({SessionState.BROWSING}),
}


@dataclass(frozen=True)
class OrderSummary:
    """What the confirmation dialog shows before submitting."""

    mode: OrderMode
    table_id: int
    line_count: int
    item_count: int
    total: Decimal | None  # APPEND mode saves a change, so no total is shown
    currency: str = "₹"

    @property
    def title(self) -> str:
        if self.mode == OrderMode.APPEND:
            return "Confirm Order Changes"
        return "Confirm Order"

    @property
    def message(self) -> str:
        if self.mode == OrderMode.APPEND or self.total is None:
            return (
                f"Save changes to order for Table {self.table_id} "
                f"with {self.line_count} items?"
            )
        return (
            f"Place order for Table {self.table_id} with {self.line_count} items "
            f"for {self.currency}{self.total.quantize(Decimal('0.01'))}?"
        )


def validate_table_id(value: Any, table_count: int = DEFAULT_TABLE_COUNT) -> int:
    """
    Parse a table identifier and check it is within ``1..table_count``.

    Raises:
        ValidationError: If the value is missing, not an integer or out of range.
    """
    if value is None or value == "":
        raise ValidationError("Please enter a table number.", field="table_id")
    if isinstance(value, bool):
        raise ValidationError("Table number must be a whole number.", field="table_id")
    try:
        table_id = int(str(value).strip())
    except ValueError as e:
        raise ValidationError(
            "Table number must be a whole number.", field="table_id"
        ) from e
    if not 1 <= table_id <= table_count:
        raise ValidationError(
            f"Table number must be between 1 and {table_count}.", field="table_id"
        )
    return table_id


# =============================================================================
# State machine
# =============================================================================


class OrderSession:
    """
    Client-side order session for one table.

    Invariant: ``mode == APPEND`` implies ``order_id`` is set; in NEW mode
    ``order_id`` stays unset until a create call succeeds.
    """

    def __init__(
        self,
        api: OrderAPIClient,
        table_id: int | str,
        store: SessionStore,
        cart: Cart | None = None,
        notifier: Notifier | None = None,
        navigate: Callable[[str], Any] | None = None,
        retry_policy: RetryPolicy = NO_RETRY,
        table_count: int = DEFAULT_TABLE_COUNT,
        note: str | None = None,
    ) -> None:
        self.api = api
        self.table_id = table_id
        self.store = store
        self.cart = cart if cart is not None else Cart()
        self.notifier = notifier or Notifier()
        self.retry_policy = retry_policy
        self.table_count = table_count
        self.note = note

        self.state = SessionState.BROWSING
        self.mode = OrderMode.NEW
        self.order_id: str | None = None
        self.summary: OrderSummary | None = None
        self.field_errors: dict[str, str] = {}
        self.error_message: str | None = None
        self.last_error: OrderingAPIError | None = None
        self.redirect_url: str | None = None
        self.cart_open = False

        self._navigate = navigate
        self._redirected_to_pending = False
        self._idempotency_key: str | None = None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _transition(self, target: SessionState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransition(
                f"Cannot go from {self.state.value} to {target.value}"
            )
        logger.debug(
            "Table %s session: %s -> %s", self.table_id, self.state.value, target.value
        )
        self.state = target

    def _go(self, url: str) -> None:
        self.redirect_url = url
        if self._navigate is not None:
            self._navigate(url)

    def _reject(self, error: ValidationError) -> None:
        self.field_errors[error.field or "__all__"] = error.message
        logger.info("Table %s: %s", self.table_id, error.message)
        self.notifier.error(error.message)

    def resume(
        self, order_id: str, lines: Iterable[CartLine], note: str | None = None
    ) -> None:
        """Switch to APPEND mode for an existing order, seeding the cart."""
        self.mode = OrderMode.APPEND
        self.order_id = order_id
        self.cart.replace(lines)
        if note is not None:
            self.note = note

    # -------------------------------------------------------------------------
    # Page load
    # -------------------------------------------------------------------------

    async def load(self) -> None:
        """
        Pick NEW or APPEND mode from the table's pending order.

        Safe to call again when data revalidates: the cart is only hydrated
        when a different order is discovered, and the redirect to the
        pending order happens at most once per session object.
        """
        try:
            table_id = validate_table_id(self.table_id, self.table_count)
        except ValidationError as e:
            self._reject(e)
            return

        try:
            pending = await self.api.find_pending_order(table_id)
        except OrderingAPIError as e:
            logger.error(
                "Error checking pending orders for table %s (%s): %s",
                table_id,
                type(e).__name__,
                e.message,
            )
            self.notifier.error("Failed to check active orders. Please try again.")
            return

        if pending is None:
            logger.info("No pending orders for table %s", table_id)
            return

        if self.order_id != pending.id:
            persisted = read_append_order(self.store)
            if persisted is not None and persisted.order_id == pending.id:
                lines = persisted.items
            else:
                lines = pending.items
            self.resume(pending.id, lines, note=pending.notes)
            logger.info("Table %s resumes pending order %s", table_id, pending.id)

        self.store.set(ORDER_ID_KEY, pending.id)

        if not self._redirected_to_pending:
            self._redirected_to_pending = True
            self._go(f"/order/{pending.id}")

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def checkout(self) -> OrderSummary | None:
        """
        BROWSING -> CONFIRMING.

        Returns:
            The summary to confirm, or None if validation failed (state and
            network untouched, message in ``field_errors``).
        """
        if SessionState.CONFIRMING not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"Cannot check out while {self.state.value}")

        self.field_errors.clear()
        try:
            table_id = validate_table_id(self.table_id, self.table_count)
            if not self.cart:
                raise ValidationError("Cart is empty", field="cart")
        except ValidationError as e:
            self._reject(e)
            return None

        if self._idempotency_key is None:
            self._idempotency_key = uuid.uuid4().hex

        if self.mode == OrderMode.APPEND and self.order_id is not None:
            write_append_order(self.store, self.order_id, self.cart.lines)

        self.summary = OrderSummary(
            mode=self.mode,
            table_id=table_id,
            line_count=len(self.cart),
            item_count=self.cart.total_quantity(),
            total=self.cart.total_price() if self.mode == OrderMode.NEW else None,
        )
        self._transition(SessionState.CONFIRMING)
        return self.summary

    def cancel(self) -> None:
        """CONFIRMING -> BROWSING."""
        self._transition(SessionState.BROWSING)
        self.summary = None
        self._idempotency_key = None

    def retry(self) -> OrderSummary | None:
        """FAILED -> CONFIRMING, keeping the idempotency key of the failed try."""
        self._transition(SessionState.CONFIRMING)
        return self.summary

    async def confirm(self) -> Order | None:
        """
        CONFIRMING -> SUBMITTING -> SUCCEEDED | FAILED.

        Creates the order in NEW mode, updates it in APPEND mode.

        Returns:
            The order returned by the API, or None on failure.
        """
        self._transition(SessionState.SUBMITTING)
        self.error_message = None
        self.last_error = None

        appending = self.mode == OrderMode.APPEND
        payload = OrderPayload(
            table_id=None
            if appending
            else validate_table_id(self.table_id, self.table_count),
            items=self.cart.lines,
            notes=self.note or None,
        )
        key = self._idempotency_key

        async def send() -> Order:
            if appending:
                assert self.order_id is not None
                return await self.api.update_order(self.order_id, payload, key)
            return await self.api.create_order(payload, key)

        verb = "update" if appending else "place"
        try:
            order = await call_with_retry(
                send, self.retry_policy, description=f"Table {self.table_id} {verb}"
            )
        except OrderingAPIError as e:
            self._fail(verb, e)
            return None

        self._succeed(order, appending)
        return order

    def start_new_session(self) -> None:
        """SUCCEEDED -> BROWSING with an empty cart in NEW mode."""
        self._transition(SessionState.BROWSING)
        self.mode = OrderMode.NEW
        self.order_id = None
        self.note = None
        self.summary = None
        self.error_message = None
        self.cart.clear()

    # -------------------------------------------------------------------------
    # Outcomes
    # -------------------------------------------------------------------------

    def _succeed(self, order: Order, appending: bool) -> None:
        self.store.set(ORDER_ID_KEY, order.id)
        if appending:
            self.store.clear(APPEND_ORDER_KEY)
        self.order_id = order.id
        self.cart.clear()
        self.cart_open = False
        self.summary = None
        self._idempotency_key = None
        self._transition(SessionState.SUCCEEDED)

        logger.info(
            "Table %s order %s %s",
            self.table_id,
            order.id,
            "updated" if appending else "placed",
        )
        self.notifier.success(
            "Order updated successfully!" if appending else "Order placed successfully!"
        )
        # A later load() finds this order pending; it is already on screen
        self._redirected_to_pending = True
        self._go(f"/order/{order.id}")

    def _fail(self, verb: str, error: OrderingAPIError) -> None:
        attempts = self.retry_policy.max_attempts
        if attempts > 1:
            message = (
                f"Failed to {verb} order after {attempts} attempts: {error.message}"
            )
        else:
            message = f"Failed to {verb} order: {error.message}"

        self.last_error = error
        self.error_message = message
        self._transition(SessionState.FAILED)
        logger.error(
            "Table %s order %s failed (%s): %s",
            self.table_id,
            verb,
            type(error).__name__,
            error.message,
        )
        self.notifier.error(message)
