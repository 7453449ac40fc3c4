"""Order intake: hand new ERP orders to the WMS.

- Deliveries in the warehouse with status "new" become pick orders
  (order_D<number>.xml). A delivery with no positive line has nothing to
  pick and is acknowledged straight away without a document.
- Inbound transfers to the warehouse with status "new" become expected
  receipts (purchase_T<number>.xml).

After the document is written the order is moved to "moved to WMS" with a
status-only update, so the next run does not list it again. One bad order is
logged and skipped; a failed listing ends the run.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from connectors.erp_base import ERPConnector, ERPError
from core.config import OrderStatusConfig
from core.models import Order, OrderKind
from core.observability import get_logger, with_correlation
from core.storage import ExchangeDirectory
from wms.documents import (
    build_pick_order,
    build_purchase_order,
    pick_order_filename,
    purchase_order_filename,
)

logger = get_logger(__name__)


@dataclass
class IntakeResult:
    kind: OrderKind
    listed: int = 0
    written: List[str] = field(default_factory=list)
    acknowledged: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    listing_error: Optional[str] = None

    def to_dict(self):
        return {
            "kind": self.kind.value,
            "listed": self.listed,
            "written": self.written,
            "acknowledged": self.acknowledged,
            "failed": self.failed,
            "listing_error": self.listing_error,
        }


async def _list_new(erp: ERPConnector, kind: OrderKind, warehouse: str,
                    statuses: OrderStatusConfig, result: IntakeResult) -> List[Order]:
    try:
        orders = await erp.list_orders(kind, warehouse=warehouse, status=statuses.new)
    except ERPError as e:
        logger.error(f"Error getting new {kind.value.lower()} orders: {e}")
        result.listing_error = str(e)
        return []
    result.listed = len(orders)
    if orders:
        logger.info(f"Handling {len(orders)} {kind.value.lower()} orders")
    return orders


async def synchronize_deliveries(
    erp: ERPConnector,
    orders_dir: ExchangeDirectory,
    warehouse: str,
    statuses: OrderStatusConfig,
) -> IntakeResult:
    result = IntakeResult(kind=OrderKind.DELIVERY)
    logger.info("Getting new deliveries")

    for order in await _list_new(erp, OrderKind.DELIVERY, warehouse, statuses, result):
        with with_correlation(order_number=order.number, order_kind=order.kind.value):
            try:
                document, lines = build_pick_order(order)
                if lines == 0:
                    logger.debug(f"Skipping delivery {order.number} because no valid lines")
                    await erp.push_status_only(order.kind, order.number, statuses.acknowledged)
                    result.acknowledged.append(order.number)
                    continue

                orders_dir.write(document, pick_order_filename(order))
                await erp.push_status_only(order.kind, order.number, statuses.moved_to_wms)
                result.written.append(order.number)
            except (ERPError, OSError, ValueError) as e:
                logger.error(f"Unable to handle delivery {order.number}: {e}")
                result.failed.append(order.number)

    return result


async def synchronize_transfers(
    erp: ERPConnector,
    purchase_orders_dir: ExchangeDirectory,
    warehouse: str,
    statuses: OrderStatusConfig,
) -> IntakeResult:
    result = IntakeResult(kind=OrderKind.TRANSFER)
    logger.info("Getting new warehouse transfers")

    for order in await _list_new(erp, OrderKind.TRANSFER, warehouse, statuses, result):
        with with_correlation(order_number=order.number, order_kind=order.kind.value):
            logger.info(f"Handling transfer {order.number}")
            try:
                purchase_orders_dir.write(build_purchase_order(order), purchase_order_filename(order))
                await erp.push_status_only(order.kind, order.number, statuses.moved_to_wms)
                result.written.append(order.number)
            except (ERPError, OSError, ValueError) as e:
                logger.error(f"Unable to handle transfer {order.number}: {e}")
                result.failed.append(order.number)

    return result
