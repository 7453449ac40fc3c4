"""WMS document builders.

Builds the XML documents this system hands to the WMS:

- OrderData: a pick order for an ERP delivery
- PurchaseOrderData: an expected receipt for an inbound ERP transfer
- Item catalog: every stock item with tracking requirements and weight
- PickConfirmation / PurchaseConfirmation: what the WMS reported as moved,
  written after a return file has been applied to the ERP

Order numbers are written with their type prefix (see
reconciliation.order_numbers) so return files identify their origin.
"""

import xml.etree.ElementTree as ET
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from core.models import Item, Order, OrderKind, OrderLine
from reconciliation.order_numbers import format_order_number


# =============================================================================
# Helpers
# =============================================================================

def _text(parent: ET.Element, tag: str, value) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = "" if value is None else str(value)
    return element


def _format_quantity(value: Optional[Decimal]) -> str:
    """Render "2.000" as "2" and "1.500" as "1.5"."""
    if value is None:
        return "0"
    if value == value.to_integral_value():
        return str(value.to_integral_value())
    return format(value.normalize(), "f")


def _serialize(root: ET.Element) -> bytes:
    ET.indent(root)
    return ET.tostring(root, encoding="UTF-8", xml_declaration=True)


def _order_header(parent: ET.Element, order: Order, with_customer: bool) -> None:
    header = ET.SubElement(parent, "Order")
    _text(header, "OrderNumber", format_order_number(order.kind, order.number))
    if with_customer:
        _text(header, "CustomerNumber", order.customer_code)
        _text(header, "CustomerName", order.customer_name)
    _text(header, "OrderDate", order.date.strftime("%Y-%m-%d") if order.date else "")


def _order_line(parent: ET.Element, line: OrderLine) -> ET.Element:
    element = ET.SubElement(parent, "Line")
    _text(element, "ArticleNumber", line.item_code)
    _text(element, "OrderedQty", _format_quantity(line.quantity))
    _text(element, "Description", line.description)
    _text(element, "Picklineinfo", line.comment)
    _text(element, "LineNumber", line.line_number)
    return element


# =============================================================================
# Outbound orders
# =============================================================================

def build_pick_order(order: Order) -> Tuple[bytes, int]:
    """Build a pick order for a delivery.

    Lines with a non-positive quantity are left out.

    Returns:
        (document, number of lines written). A zero count means there is
        nothing for the warehouse to pick.
    """
    root = ET.Element("OrderData")
    _order_header(root, order, with_customer=True)

    lines = order.positive_lines()
    for line in lines:
        _order_line(root, line)

    return _serialize(root), len(lines)


def build_purchase_order(order: Order) -> bytes:
    """Build an expected-receipt document for an inbound transfer."""
    root = ET.Element("PurchaseOrderData")
    _order_header(root, order, with_customer=False)
    for line in order.lines:
        _order_line(root, line)
    return _serialize(root)


def build_item_catalog(items: Iterable[Item]) -> bytes:
    """Build the item catalog snapshot. Weights are converted to grams."""
    root = ET.Element("root")
    for item in items:
        data = ET.SubElement(root, "ItemData")
        _text(data, "ItemCode", item.code)
        _text(data, "ItemDescription", item.name)
        if item.weight_kg:
            _text(data, "WeightG", _format_quantity(round(item.weight_kg * 1000, 3)))
        _text(data, "RequireSerialNumber", 1 if item.requires_serial_number else 0)
        _text(data, "RequireBatchNumber", 1 if item.requires_batch_number else 0)
    return _serialize(root)


# =============================================================================
# Confirmations
# =============================================================================

def _build_confirmation(root_tag: str, order: Order, lines: List[OrderLine], with_customer: bool) -> bytes:
    root = ET.Element(root_tag)
    _order_header(root, order, with_customer=with_customer)
    for line in lines:
        element = _order_line(root, line)
        _text(element, "MovedQty", line.moved_qty)
        if line.serial_or_batch:
            _text(element, "BatchSerial", line.serial_or_batch)
    return _serialize(root)


def build_pick_confirmation(order: Order) -> bytes:
    """Confirmation of what was picked: only lines with a moved quantity."""
    return _build_confirmation("PickConfirmation", order, order.moved_lines(),
                               with_customer=order.kind == OrderKind.DELIVERY)


def build_purchase_confirmation(order: Order) -> bytes:
    """Confirmation of an inbound transfer: every line, moved or not."""
    return _build_confirmation("PurchaseConfirmation", order, order.lines, with_customer=False)


# =============================================================================
# File names
# =============================================================================

ITEM_CATALOG_FILENAME = "items.xml"


def pick_order_filename(order: Order) -> str:
    return f"order_{format_order_number(order.kind, order.number)}.xml"


def purchase_order_filename(order: Order) -> str:
    return f"purchase_{format_order_number(order.kind, order.number)}.xml"


def confirmation_filename(order: Order) -> str:
    return f"confirmation_{format_order_number(order.kind, order.number)}.xml"
