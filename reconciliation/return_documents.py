"""WMS return file parsing.

A return file looks like:

    <Tcplus>
      <PickReturn>
        <Data>
          <OrderNumber>D00050</OrderNumber>
          <LineNumber>1</LineNumber>
          <Delivered>3</Delivered>
          <LocationInfo>BATCH-42</LocationInfo>
        </Data>
        ...
      </PickReturn>
    </Tcplus>

The first child of the root names the document type. Parsing turns the
file into a ReturnDocument tagged with a ReturnDocumentType, which is the
only place the element names are compared.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import List, Optional

RETURN_ROOT_ELEMENT = "Tcplus"


class ReturnDocumentType(str, Enum):
    INVENTORY_RETURN = "InventoryReturn"
    PURCHASE_RETURN = "PurchaseReturn"
    PICK_RETURN = "PickReturn"
    UNKNOWN = "Unknown"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> "ReturnDocumentType":
        for member in cls:
            if member is not cls.UNKNOWN and member.value == tag:
                return member
        return cls.UNKNOWN


class ReturnFileError(Exception):
    """A return file is not XML or has no recognizable structure."""
    pass


@dataclass
class ReturnRecord:
    """One fulfillment event reported by the WMS."""
    order_number: str
    line_number: Optional[str] = None
    article_number: Optional[str] = None
    delivered_qty: int = 0
    location_info: Optional[str] = None


@dataclass
class ReturnDocument:
    """A parsed return file."""
    document_type: ReturnDocumentType
    records: List[ReturnRecord] = field(default_factory=list)
    source: Optional[Path] = None
    tag: Optional[str] = None  # raw first-child tag, kept for logging unknown types


def _child_text(element: ET.Element, tag: str) -> Optional[str]:
    child = element.find(tag)
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text or None


def _parse_quantity(raw: Optional[str], order_number: str) -> int:
    if raw is None:
        return 0
    try:
        qty = Decimal(raw.replace(",", "."))
    except (InvalidOperation, ValueError) as e:
        raise ReturnFileError(f"Invalid Delivered value {raw!r} for order {order_number}") from e
    if not qty.is_finite():
        raise ReturnFileError(f"Invalid Delivered value {raw!r} for order {order_number}")
    if qty < 0:
        raise ReturnFileError(f"Negative Delivered value {raw!r} for order {order_number}")
    if qty != qty.to_integral_value():
        raise ReturnFileError(f"Fractional Delivered value {raw!r} for order {order_number}")
    return int(qty)


def parse_record(data: ET.Element) -> ReturnRecord:
    order_number = _child_text(data, "OrderNumber") or ""
    return ReturnRecord(
        order_number=order_number,
        line_number=_child_text(data, "LineNumber"),
        article_number=_child_text(data, "ArticleNumber"),
        delivered_qty=_parse_quantity(_child_text(data, "Delivered"), order_number),
        location_info=_child_text(data, "LocationInfo"),
    )


def parse_return_document(content: bytes, source: Optional[Path] = None) -> ReturnDocument:
    """Parse the content of one return file.

    Records are only parsed for document types that get reconciled; an
    InventoryReturn or unknown document comes back with no records.

    Raises:
        ReturnFileError: Not XML, no Tcplus root, or a malformed Delivered value
    """
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ReturnFileError(f"Return file is not valid XML: {e}") from e

    if root.tag != RETURN_ROOT_ELEMENT:
        root = root.find(f".//{RETURN_ROOT_ELEMENT}")
        if root is None:
            raise ReturnFileError(f"Return file has no {RETURN_ROOT_ELEMENT} element")

    body = next(iter(root), None)
    tag = body.tag if body is not None else None
    document_type = ReturnDocumentType.from_tag(tag)

    document = ReturnDocument(document_type=document_type, source=source, tag=tag)
    if document_type in (ReturnDocumentType.PICK_RETURN, ReturnDocumentType.PURCHASE_RETURN):
        document.records = [parse_record(data) for data in body.findall("Data")]
    return document


def read_return_document(path: Path) -> ReturnDocument:
    return parse_return_document(Path(path).read_bytes(), source=Path(path))
