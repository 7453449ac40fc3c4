"""Errors raised while applying WMS return files.

All of these are permanent for the order or record they concern: retrying
the same file would fail the same way.
"""

from typing import Optional


class ReconciliationError(Exception):
    """Base class for reconciliation failures."""

    is_transient: bool = False

    def __init__(self, message: str, order_number: Optional[str] = None):
        super().__init__(message)
        self.order_number = order_number


class MalformedOrderNumber(ReconciliationError):
    """An order number is not a letter prefix followed by digits."""

    def __init__(self, raw: Optional[str]):
        super().__init__(f"Malformed order number: {raw!r}", raw)
        self.raw = raw


class UnsupportedOrderType(ReconciliationError):
    """An order number carries no prefix, or one this integration does not handle."""

    def __init__(self, order_number: str, type_code: str):
        label = repr(type_code) if type_code else "no prefix"
        super().__init__(f"Unsupported order type {label} on {order_number}", order_number)
        self.type_code = type_code


class OrderLineNotFound(ReconciliationError):
    """A return record points at a line the ERP order does not have."""

    def __init__(self, order_number: str, line_number: Optional[str] = None,
                 article_number: Optional[str] = None):
        key = f"line {line_number}" if line_number else f"article {article_number}"
        super().__init__(f"Order {order_number} has no unique {key}", order_number)
        self.line_number = line_number
        self.article_number = article_number
