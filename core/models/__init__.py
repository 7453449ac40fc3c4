"""Core data models - ERP-neutral order and item types."""

from core.models.orders import (
    CanonicalBase,
    DecimalValue,
    QuantityValue,
    DateValue,
    OrderKind,
    OrderLine,
    Order,
    ItemTracking,
    Item,
    same_line_number,
)

__all__ = [
    "CanonicalBase",
    "DecimalValue",
    "QuantityValue",
    "DateValue",
    "OrderKind",
    "OrderLine",
    "Order",
    "ItemTracking",
    "Item",
    "same_line_number",
]
