"""Tableside Schemas - Pydantic models for data contracts."""

from tableside_schemas.ordering import (
    AccessDecision,
    AppendOrderState,
    CartLine,
    ErrorBody,
    MenuItem,
    Order,
    OrderPayload,
    OrderStatus,
)

__all__ = [
    "AccessDecision",
    "AppendOrderState",
    "CartLine",
    "ErrorBody",
    "MenuItem",
    "Order",
    "OrderPayload",
    "OrderStatus",
]
