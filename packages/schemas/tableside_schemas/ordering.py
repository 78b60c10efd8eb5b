"""Ordering schemas - data contracts for the café menu and order API."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_serializer,
)


def _identifier(value: Any) -> Any:
    """Order ids arrive as ints or strings depending on the backend."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Identifier = Annotated[str, BeforeValidator(_identifier)]

# =============================================================================
# Enums
# =============================================================================


class OrderStatus(str, Enum):
    """Order lifecycle status as reported by the order API."""

    PENDING = "pending"
    PREPARING = "preparing"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# =============================================================================
# Menu
# =============================================================================


class MenuItem(BaseModel):
    """A menu item as served by ``GET /api/menu``."""

    model_config = ConfigDict(frozen=True)

    id: int | str
    name: str
    price: Decimal = Field(ge=0)
    category: str = ""
    image_url: str | None = None


# =============================================================================
# Cart / Orders
# =============================================================================


class CartLine(BaseModel):
    """
    Line item in a cart or order.

    Display fields are copied from the menu item when the line is created,
    so later menu changes never reprice a line already in the cart.
    """

    item_id: int | str
    name: str
    price: Decimal = Field(ge=0)
    category: str = ""
    image_url: str | None = None
    quantity: int = Field(default=1, ge=1)

    @classmethod
    def from_menu_item(cls, item: MenuItem, quantity: int = 1) -> "CartLine":
        """Snapshot a menu item into a new cart line."""
        return cls(
            item_id=item.id,
            name=item.name,
            price=item.price,
            category=item.category,
            image_url=item.image_url,
            quantity=quantity,
        )

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @field_serializer("price", when_used="json")
    def _serialize_price(self, price: Decimal) -> float:
        # The order API expects JSON numbers, not decimal strings
        return float(price)


class Order(BaseModel):
    """An order resource returned by the order API."""

    id: Identifier
    table_id: int | None = None
    status: str = OrderStatus.PENDING.value
    items: list[CartLine] = Field(default_factory=list)
    notes: str | None = None
    created_at: datetime | None = None
    order_number: int | str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING.value


class OrderPayload(BaseModel):
    """Body for ``POST /api/orders`` and ``PATCH /api/orders/{id}``."""

    table_id: int | None = None  # Only sent on create
    items: list[CartLine]
    notes: str | None = None

    def to_json(self) -> dict[str, Any]:
        """Serialize for the wire, omitting unset optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


class ErrorBody(BaseModel):
    """Error body returned by the order API on failure."""

    error: str | None = None


class AppendOrderState(BaseModel):
    """Persisted description of a pending order being resumed for editing."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: Identifier = Field(alias="orderId")
    items: list[CartLine] = Field(default_factory=list)


# =============================================================================
# Access
# =============================================================================


class AccessDecision(BaseModel):
    """
    Result of the café network check.

    Effectively tri-state: ``checking`` until a check completes, then
    ``allowed`` or ``denied``. Never persisted.
    """

    allowed: bool = False
    checked: bool = False
    address: str | None = None

    @property
    def status(self) -> str:
        if not self.checked:
            return "checking"
        return "allowed" if self.allowed else "denied"
