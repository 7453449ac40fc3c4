"""Order number prefixes.

Order numbers travel to the WMS with a type prefix so return files say where
they came from: `D00123` is delivery 00123, `T7` is transfer 7. Manual picks
(`MP`) and manual supplies (`MS`) are raised in the WMS itself and have no
ERP order behind them.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.models import OrderKind
from reconciliation.errors import MalformedOrderNumber

ORDER_NUMBER_PATTERN = re.compile(r"^([A-Z]*)(\d+)$")


class OrderType(str, Enum):
    """Closed set of prefixes the WMS integration uses."""
    DELIVERY = "D"
    TRANSFER = "T"
    MANUAL_PICK = "MP"
    MANUAL_SUPPLY = "MS"

    @property
    def order_kind(self) -> Optional[OrderKind]:
        """ERP document kind behind the prefix; None for WMS-only types."""
        return _KIND_BY_TYPE.get(self)

    @property
    def is_manual(self) -> bool:
        return self in (OrderType.MANUAL_PICK, OrderType.MANUAL_SUPPLY)


_KIND_BY_TYPE = {
    OrderType.DELIVERY: OrderKind.DELIVERY,
    OrderType.TRANSFER: OrderKind.TRANSFER,
}

_TYPE_BY_KIND = {kind: order_type for order_type, kind in _KIND_BY_TYPE.items()}


@dataclass(frozen=True)
class OrderNumberRef:
    """A parsed order number: type prefix plus the bare ERP number."""
    type_code: str
    number: str

    @property
    def order_type(self) -> Optional[OrderType]:
        """The prefix as an OrderType, or None when empty or unrecognized."""
        try:
            return OrderType(self.type_code)
        except ValueError:
            return None

    def __str__(self) -> str:
        return f"{self.type_code}{self.number}"


def resolve_order_number(raw: str) -> OrderNumberRef:
    """Split a WMS order number into type prefix and bare number.

    >>> resolve_order_number("D00123")
    OrderNumberRef(type_code='D', number='00123')
    >>> resolve_order_number("00123")
    OrderNumberRef(type_code='', number='00123')

    Raises:
        MalformedOrderNumber: If the value is not letters followed by digits
    """
    value = (raw or "").strip()
    match = ORDER_NUMBER_PATTERN.match(value)
    if not match:
        raise MalformedOrderNumber(raw)
    return OrderNumberRef(type_code=match.group(1), number=match.group(2))


def format_order_number(kind: OrderKind, number: str) -> str:
    """Prefix an ERP number for an outbound WMS document."""
    return f"{_TYPE_BY_KIND[kind].value}{number}"
