"""ERP-neutral order and item models.

These models are what the reconciliation engine, the intake jobs and the WMS
document builders work with. Connector modules translate ERP payloads into
them and back; nothing here knows about Directo XML.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated


# =============================================================================
# Value Parsers (ERP attributes arrive as strings)
# =============================================================================

def _parse_decimal(value):
    """Parse decimal from strings such as "1.000" or "1,5"."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return None
        return Decimal(s.replace(",", "."))
    return value


def _parse_int(value):
    """Parse integer quantities; "3.000" becomes 3."""
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, (float, Decimal)):
        return int(value)
    if isinstance(value, str):
        s = value.strip().replace(",", ".")
        if s == "":
            return 0
        return int(Decimal(s))
    return value


def _parse_date(value):
    """Parse the date formats Directo emits."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()
        if s == "":
            return None
        for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d", "%d.%m.%Y %H:%M:%S", "%d.%m.%Y %H:%M", "%d.%m.%Y"):
            try:
                return datetime.strptime(s, fmt).date()
            except ValueError:
                continue
        raise ValueError(f"Cannot parse date: {s}")
    return value


DecimalValue = Annotated[Decimal, BeforeValidator(_parse_decimal)]
QuantityValue = Annotated[int, BeforeValidator(_parse_int)]
DateValue = Annotated[date, BeforeValidator(_parse_date)]


# =============================================================================
# Base Model
# =============================================================================

class CanonicalBase(BaseModel):
    """Base model for all ERP-neutral structures."""
    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)


# =============================================================================
# Orders
# =============================================================================

class OrderKind(str, Enum):
    """Which ERP document an order is."""
    DELIVERY = "DELIVERY"   # outbound pick
    TRANSFER = "TRANSFER"   # warehouse movement


def same_line_number(a: Optional[str], b: Optional[str]) -> bool:
    """Compare line numbers, treating "01" and "1" as equal."""
    if a is None or b is None:
        return False
    a, b = a.strip(), b.strip()
    if a.isdigit() and b.isdigit():
        return int(a) == int(b)
    return a == b


class OrderLine(CanonicalBase):
    """A single row of an ERP order."""
    line_number: str
    item_code: str
    quantity: Optional[DecimalValue] = None
    description: Optional[str] = None
    comment: Optional[str] = None
    moved_qty: QuantityValue = 0
    serial_or_batch: Optional[str] = None

    # Row attributes not modelled above, pushed back unchanged
    attributes: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_positive(self) -> bool:
        return self.quantity is not None and self.quantity > 0


class Order(CanonicalBase):
    """A delivery or transfer as fetched from the ERP.

    Within a reconciliation pass the instance is mutated in place (line
    moved quantities, status) and then pushed back whole.
    """
    kind: OrderKind
    number: str
    status: Optional[str] = None
    date: Optional[DateValue] = None

    # Deliveries
    customer_code: Optional[str] = None
    customer_name: Optional[str] = None

    # Transfers
    from_stock: Optional[str] = None
    to_stock: Optional[str] = None

    lines: List[OrderLine] = Field(default_factory=list)

    # Header attributes not modelled above, pushed back unchanged
    attributes: Dict[str, str] = Field(default_factory=dict)

    def reset_moved_quantities(self) -> None:
        for line in self.lines:
            line.moved_qty = 0

    def find_line(self, line_number: Optional[str] = None, item_code: Optional[str] = None) -> Optional[OrderLine]:
        """Locate the single line for a line number, or failing that a unique item code.

        Returns None when nothing (or more than one line, for item codes) matches.
        """
        if line_number:
            matches = [line for line in self.lines if same_line_number(line.line_number, line_number)]
        elif item_code:
            matches = [line for line in self.lines if line.item_code == item_code]
        else:
            return None
        return matches[0] if len(matches) == 1 else None

    def moved_lines(self) -> List[OrderLine]:
        return [line for line in self.lines if line.moved_qty > 0]

    def positive_lines(self) -> List[OrderLine]:
        return [line for line in self.lines if line.is_positive]


# =============================================================================
# Items
# =============================================================================

class ItemTracking(int, Enum):
    """ERP tracking mode for an item (Directo `sntype`)."""
    NONE = 0
    SERIAL = 1
    BATCH = 2


class Item(CanonicalBase):
    """A stock item from the ERP catalog."""
    code: str
    name: Optional[str] = None
    item_type: Optional[str] = None
    tracking: ItemTracking = ItemTracking.NONE
    weight_kg: Optional[DecimalValue] = None

    @property
    def requires_serial_number(self) -> bool:
        return self.tracking == ItemTracking.SERIAL

    @property
    def requires_batch_number(self) -> bool:
        return self.tracking == ItemTracking.BATCH
