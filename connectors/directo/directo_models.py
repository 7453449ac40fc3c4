"""Directo XML <-> normalized model mapping.

Directo returns records as attributes on elements under a `transport` root:

    <transport>
      <delivery number="1001" customercode="C1" customername="Acme" date="..." status="NEW">
        <rows>
          <row rn="1" item="SKU-1" qty="2" name="Widget" comment="" movedqty="0"/>
        </rows>
      </delivery>
    </transport>

Updates are posted back as the same elements wrapped in a plural root
(`deliveries`, `movements`) with an `appkey` attribute on each record.
"""

import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from connectors.erp_base import CommitError, TransportError
from core.models import Item, ItemTracking, Order, OrderKind, OrderLine


# =============================================================================
# Record Types
# =============================================================================

RECORD_TAGS: Dict[OrderKind, str] = {
    OrderKind.DELIVERY: "delivery",
    OrderKind.TRANSFER: "movement",
}

PUT_ROOT_TAGS: Dict[OrderKind, str] = {
    OrderKind.DELIVERY: "deliveries",
    OrderKind.TRANSFER: "movements",
}

# Warehouse filter parameter per kind: deliveries ship from `stock`,
# transfers are selected by the receiving `tostock`.
WAREHOUSE_PARAMS: Dict[OrderKind, str] = {
    OrderKind.DELIVERY: "stock",
    OrderKind.TRANSFER: "tostock",
}

# Fields the ERP must not see on a status-only update
STATUS_UPDATE_DROPPED_FIELDS: Dict[OrderKind, tuple] = {
    OrderKind.DELIVERY: ("date", "ts"),
    OrderKind.TRANSFER: ("date", "ts", "user", "confirmed", "fromstock", "tostock", "text"),
}

SERIAL_ATTRIBUTE = "sn"
ITEM_TIMESTAMP_FORMAT = "%d.%m.%Y %H:%M"
EPOCH_TIMESTAMP = "1.1.1970"


# =============================================================================
# Parsing
# =============================================================================

def parse_transport(body: str, tag: str) -> List[ET.Element]:
    """Return every `tag` record under the `transport` root of a response.

    A body without a `transport` root yields an empty list.

    Raises:
        TransportError: If the body is not XML at all
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise TransportError(f"Unparseable response from ERP: {e}", response_body=body) from e

    if root.tag != "transport":
        transport = root.find(".//transport")
        if transport is None:
            return []
        root = transport
    return root.findall(tag)


def line_from_element(row: ET.Element) -> OrderLine:
    attrs = dict(row.attrib)
    return OrderLine(
        line_number=attrs.get("rn", ""),
        item_code=attrs.get("item", ""),
        quantity=attrs.get("qty"),
        description=attrs.get("name"),
        comment=attrs.get("comment"),
        serial_or_batch=attrs.get(SERIAL_ATTRIBUTE) or None,
        attributes=attrs,
    )


def order_from_element(element: ET.Element, kind: OrderKind) -> Order:
    """Build an Order from a `delivery` or `movement` element."""
    attrs = dict(element.attrib)
    return Order(
        kind=kind,
        number=attrs.get("number", ""),
        status=attrs.get("status"),
        date=attrs.get("date"),
        customer_code=attrs.get("customercode"),
        customer_name=attrs.get("customername"),
        from_stock=attrs.get("fromstock"),
        to_stock=attrs.get("tostock"),
        lines=[line_from_element(row) for row in element.findall("rows/row")],
        attributes=attrs,
    )


def item_from_element(element: ET.Element) -> Item:
    attrs = element.attrib
    sntype = (attrs.get("sntype") or "0").strip()
    weight = (attrs.get("weight") or "").strip()
    tracking = int(sntype) if sntype.isdigit() else 0
    return Item(
        code=attrs["code"],
        name=attrs.get("name"),
        item_type=attrs.get("type"),
        tracking=ItemTracking(tracking) if tracking in (0, 1, 2) else ItemTracking.NONE,
        weight_kg=weight or None,
    )


# =============================================================================
# Serialization
# =============================================================================

def order_to_element(order: Order, appkey: str) -> ET.Element:
    """Serialize a full order update: every fetched attribute plus new state."""
    attrs = dict(order.attributes)
    attrs["number"] = order.number
    if order.status is not None:
        attrs["status"] = order.status
    attrs["appkey"] = appkey

    element = ET.Element(RECORD_TAGS[order.kind], attrs)
    rows = ET.SubElement(element, "rows")
    for line in order.lines:
        row_attrs = dict(line.attributes)
        row_attrs["rn"] = line.line_number
        row_attrs["item"] = line.item_code
        row_attrs["movedqty"] = str(line.moved_qty)
        if line.serial_or_batch:
            row_attrs[SERIAL_ATTRIBUTE] = line.serial_or_batch
        ET.SubElement(rows, "row", row_attrs)
    return element


def status_only_element(element: ET.Element, kind: OrderKind, status: str, appkey: str) -> ET.Element:
    """Strip a fetched record down to what a status-only update needs.

    Rows are removed so line data is never overwritten, and so are fields
    the ERP manages itself.
    """
    attrs = {
        k: v for k, v in element.attrib.items()
        if k not in STATUS_UPDATE_DROPPED_FIELDS[kind]
    }
    attrs["status"] = status
    attrs["appkey"] = appkey
    return ET.Element(RECORD_TAGS[kind], attrs)


def build_put_payload(kind: OrderKind, elements: List[ET.Element]) -> str:
    root = ET.Element(PUT_ROOT_TAGS[kind])
    root.extend(elements)
    return '<?xml version="1.0" encoding="utf-8"?>' + ET.tostring(root, encoding="unicode")


# =============================================================================
# Update Results
# =============================================================================

def check_update_response(body: str, order_number: Optional[str] = None) -> None:
    """Inspect the `results/Result` of an update.

    Directo answers HTTP 200 even when it refuses a change; the refusal is
    a non-zero `Type` on the result element.

    Raises:
        TransportError: The body is not a results document
        CommitError: The ERP refused the update
    """
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        raise TransportError(f"Unparseable update response: {e}", response_body=body,
                             order_number=order_number) from e

    result = root if root.tag == "Result" else root.find(".//Result")
    if result is None:
        raise TransportError("Update response has no result", response_body=body,
                             order_number=order_number)

    result_type = (result.get("Type") or "").strip()
    if result_type in ("", "0"):
        return

    description = result.get("Desc") or result.get("Description") or (result.text or "").strip()
    raise CommitError(
        f"ERP refused update of {order_number or 'record'} (type {result_type}): {description}",
        result_code=result_type,
        order_number=order_number,
    )
