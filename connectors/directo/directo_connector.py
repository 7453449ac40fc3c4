"""Directo ERP Connector.

Implements ERPConnector on top of DirectoApiClient and the XML mapping in
directo_models.
"""

from datetime import datetime
from typing import List, Optional
import xml.etree.ElementTree as ET

from connectors.erp_base import (
    ERPConfig,
    ERPConnectionStatus,
    ERPConnector,
    InvalidOrderRecord,
    UnknownOrder,
)
from connectors.directo.directo_client import DirectoApiClient, DirectoApiConfig
from connectors.directo.directo_models import (
    EPOCH_TIMESTAMP,
    ITEM_TIMESTAMP_FORMAT,
    RECORD_TAGS,
    WAREHOUSE_PARAMS,
    build_put_payload,
    check_update_response,
    item_from_element,
    order_from_element,
    order_to_element,
    parse_transport,
    status_only_element,
)
from core.config import AppConfig
from core.models import Item, Order, OrderKind
from core.observability import get_logger

logger = get_logger(__name__)


class DirectoConnector(ERPConnector):
    """Directo implementation of the ERP connector interface.

    Usage:
        async with DirectoConnector.from_app_config(config) as erp:
            order = await erp.fetch_order(OrderKind.DELIVERY, "1001")
    """

    def __init__(self, config: ERPConfig, api_key: str):
        super().__init__(config)
        self.api_key = api_key
        self.client = DirectoApiClient(
            DirectoApiConfig(
                organization=config.organization,
                api_key=api_key,
                base_url=config.base_url,
                timeout_seconds=config.timeout_seconds,
            )
        )

    @classmethod
    def from_app_config(cls, app_config: AppConfig) -> "DirectoConnector":
        directo = app_config.directo
        return cls(
            ERPConfig(
                erp_type="directo",
                base_url=directo.base_url,
                organization=directo.organization,
                timeout_seconds=directo.timeout_seconds,
            ),
            api_key=directo.api_key,
        )

    async def connect(self) -> bool:
        ok = await self.client.connect()
        self._connection_status = ERPConnectionStatus.CONNECTED if ok else ERPConnectionStatus.FAILED
        return ok

    async def disconnect(self) -> None:
        await self.client.disconnect()
        self._connection_status = ERPConnectionStatus.DISCONNECTED

    # =========================================================================
    # Orders
    # =========================================================================

    async def _fetch_order_element(self, kind: OrderKind, number: str) -> ET.Element:
        body = await self.client.get(RECORD_TAGS[kind], number=number)
        elements = parse_transport(body, RECORD_TAGS[kind])
        if not elements:
            raise UnknownOrder(kind, number)
        return elements[0]

    async def fetch_order(self, kind: OrderKind, number: str) -> Order:
        element = await self._fetch_order_element(kind, number)
        try:
            order = order_from_element(element, kind)
        except (KeyError, ValueError, ArithmeticError) as e:
            raise InvalidOrderRecord(kind, number, str(e)) from e
        logger.debug(f"Fetched {kind.value.lower()} {number} with {len(order.lines)} lines")
        return order

    async def list_orders(
        self,
        kind: OrderKind,
        warehouse: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Order]:
        if not (warehouse or status):
            raise ValueError("Listing orders needs a warehouse or a status filter")

        filters = {WAREHOUSE_PARAMS[kind]: warehouse, "status": status}
        body = await self.client.get(RECORD_TAGS[kind], **filters)
        orders = []
        for element in parse_transport(body, RECORD_TAGS[kind]):
            try:
                orders.append(order_from_element(element, kind))
            except (KeyError, ValueError, ArithmeticError) as e:
                logger.error(f"Unable to parse {kind.value.lower()} {element.get('number')!r}: {e}")
        return orders

    async def push_order_update(self, order: Order) -> None:
        logger.info(f"Updating {order.kind.value.lower()} {order.number} to {order.status} with {len(order.lines)} lines")
        payload = build_put_payload(order.kind, [order_to_element(order, self.api_key)])
        body = await self.client.put(RECORD_TAGS[order.kind], payload)
        check_update_response(body, order.number)

    async def push_status_only(self, kind: OrderKind, number: str, status: str) -> None:
        if not (number and status):
            raise ValueError("Status update needs an order number and a status")

        element = await self._fetch_order_element(kind, number)
        logger.info(f"Updating {kind.value.lower()} {number} status to {status}")
        payload = build_put_payload(kind, [status_only_element(element, kind, status, self.api_key)])
        body = await self.client.put(RECORD_TAGS[kind], payload)
        check_update_response(body, number)

    # =========================================================================
    # Items
    # =========================================================================

    async def fetch_items_since(self, timestamp: Optional[datetime] = None) -> List[Item]:
        ts = timestamp.strftime(ITEM_TIMESTAMP_FORMAT) if timestamp else EPOCH_TIMESTAMP
        body = await self.client.get("item", ts=ts)

        items = []
        for element in parse_transport(body, "item"):
            try:
                items.append(item_from_element(element))
            except (KeyError, ValueError) as e:
                logger.error(f"Unable to parse item {element.attrib!r}: {e}")
        return items
