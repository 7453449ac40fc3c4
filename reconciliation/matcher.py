"""Return line matching.

Applies the records of one return document to the ERP orders they
reference: each record's delivered quantity is added to the moved quantity
of the order line with the same line number. A line can be fulfilled by
several scan events, so quantities accumulate rather than overwrite.

Failures are per order. A record that cannot be applied fails its order,
later records of that order are ignored, and every other order in the
document carries on.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from connectors.erp_base import ERPError
from core.models import Order
from core.observability import get_logger, with_correlation
from reconciliation.errors import (
    OrderLineNotFound,
    ReconciliationError,
    UnsupportedOrderType,
)
from reconciliation.order_cache import CacheKey, OrderCache
from reconciliation.order_numbers import OrderNumberRef, resolve_order_number
from reconciliation.return_documents import ReturnRecord

logger = get_logger(__name__)


@dataclass
class MatchedOrder:
    """An order whose lines have absorbed the records of a document."""
    ref: OrderNumberRef
    order: Order
    records_applied: int = 0


@dataclass
class MatchResult:
    """Outcome of matching one document.

    Attributes:
        matched: Orders ready for a status transition, in first-seen order
        failures: Errors by order number as written in the file
        skipped: Records deliberately not applied (manual pick/supply)
    """
    matched: Dict[CacheKey, MatchedOrder] = field(default_factory=dict)
    failures: Dict[str, Exception] = field(default_factory=dict)
    skipped: List[ReturnRecord] = field(default_factory=list)


def apply_record(order: Order, record: ReturnRecord) -> None:
    """Add one record's quantity (and batch/serial) to its order line.

    Raises:
        OrderLineNotFound: No single line matches the record
    """
    line = order.find_line(line_number=record.line_number, item_code=record.article_number)
    if line is None:
        raise OrderLineNotFound(order.number, record.line_number, record.article_number)

    line.moved_qty += record.delivered_qty
    if record.location_info:
        line.serial_or_batch = record.location_info


async def match_records(records: List[ReturnRecord], cache: OrderCache) -> MatchResult:
    """Accumulate a document's records onto their orders.

    Orders come from the pass cache, so an order referenced by many records
    (or many files) is fetched once.
    """
    result = MatchResult()

    for record in records:
        label = record.order_number
        if label in result.failures:
            continue

        key = None
        with with_correlation(order_number=label):
            try:
                ref = resolve_order_number(record.order_number)
                order_type = ref.order_type

                if order_type is not None and order_type.is_manual:
                    logger.warning(f"Skipping {order_type.name.lower().replace('_', ' ')} record {label}: not supported")
                    result.skipped.append(record)
                    continue

                if order_type is None or order_type.order_kind is None:
                    raise UnsupportedOrderType(label, ref.type_code)

                key = (order_type.order_kind, ref.number)
                order = await cache.get(*key)
                apply_record(order, record)

            except (ReconciliationError, ERPError) as e:
                logger.error(f"Order {label} failed during matching: {e}")
                result.failures[label] = e
                if key is not None:
                    result.matched.pop(key, None)
                continue

        matched = result.matched.get(key)
        if matched is None:
            matched = result.matched[key] = MatchedOrder(ref=ref, order=order)
        matched.records_applied += 1

    return result
