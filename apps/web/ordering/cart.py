"""Cart store - ordered line items with quantity merge semantics."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from decimal import Decimal

from tableside_schemas import CartLine, MenuItem

logger = logging.getLogger(__name__)

CartObserver = Callable[[int | str], None]


class Cart:
    """
    In-memory cart for one browsing session.

    Holds at most one line per item id; adding an item already in the cart
    increments its quantity. Lines snapshot the menu item's display fields
    at add-time.
    """

    def __init__(self, lines: Iterable[CartLine] = ()) -> None:
        self._lines: list[CartLine] = []
        self._observers: list[CartObserver] = []
        self.replace(lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)

    def __iter__(self):
        return iter(list(self._lines))

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    def observe(self, callback: CartObserver) -> None:
        """Call ``callback(item_id)`` whenever an item is added."""
        self._observers.append(callback)

    def _index(self, item_id: int | str) -> int | None:
        for index, line in enumerate(self._lines):
            if line.item_id == item_id:
                return index
        return None

    def add_item(self, item: MenuItem) -> list[CartLine]:
        """Add one of ``item``, merging with an existing line."""
        index = self._index(item.id)
        if index is None:
            self._lines.append(CartLine.from_menu_item(item))
        else:
            line = self._lines[index]
            self._lines[index] = line.model_copy(update={"quantity": line.quantity + 1})

        logger.debug("Item added to cart: %s (%s)", item.id, item.name)
        for callback in list(self._observers):
            callback(item.id)
        return self.lines

    def set_quantity(self, item_id: int | str, quantity: int) -> list[CartLine]:
        """Set a line's quantity; zero or less removes it."""
        index = self._index(item_id)
        if index is None:
            return self.lines
        if quantity <= 0:
            del self._lines[index]
        else:
            line = self._lines[index]
            self._lines[index] = line.model_copy(update={"quantity": quantity})
        return self.lines

    def remove_item(self, item_id: int | str) -> list[CartLine]:
        return self.set_quantity(item_id, 0)

    def replace(self, lines: Iterable[CartLine]) -> list[CartLine]:
        """Load lines (persisted or from an order), merging duplicate ids."""
        self._lines = []
        for line in lines:
            index = self._index(line.item_id)
            if index is None:
                self._lines.append(line.model_copy())
            else:
                existing = self._lines[index]
                self._lines[index] = existing.model_copy(
                    update={"quantity": existing.quantity + line.quantity}
                )
        return self.lines

    def clear(self) -> None:
        self._lines = []

    def total_quantity(self) -> int:
        return sum(line.quantity for line in self._lines)

    def total_price(self) -> Decimal:
        # Decimal keeps currency exact; no float accumulation
        return sum((line.line_total for line in self._lines), Decimal("0.00"))


class AddedAcknowledgements:
    """
    Transient "added" flags keyed by item id.

    Attach with ``cart.observe(acks.mark)``. Each flag clears itself after
    ``delay`` seconds; re-adding the same item restarts its timer.
    """

    DEFAULT_DELAY = 1.0

    def __init__(self, delay: float = DEFAULT_DELAY) -> None:
        self.delay = delay
        self._handles: dict[int | str, asyncio.TimerHandle] = {}

    def mark(self, item_id: int | str) -> None:
        previous = self._handles.pop(item_id, None)
        if previous is not None:
            previous.cancel()
        loop = asyncio.get_running_loop()
        self._handles[item_id] = loop.call_later(self.delay, self._clear, item_id)

    def _clear(self, item_id: int | str) -> None:
        self._handles.pop(item_id, None)

    def is_added(self, item_id: int | str) -> bool:
        return item_id in self._handles

    def cancel(self) -> None:
        """Drop every pending flag (view torn down)."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
