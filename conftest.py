"""Shared fixtures: an in-memory ERP and temporary WMS exchange directories."""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from connectors.erp_base import ERPConfig, ERPConnector, UnknownOrder
from core.config import OrderStatusConfig
from core.models import Item, Order, OrderKind, OrderLine
from core.storage import ExchangeDirectory


class FakeERPConnector(ERPConnector):
    """ERP double keeping orders in a dict.

    Errors can be injected per operation and order number:
        erp.fail("fetch", "00050", TransportError("down"))
    """

    def __init__(self, orders: Optional[List[Order]] = None, items: Optional[List[Item]] = None):
        super().__init__(ERPConfig(erp_type="fake", base_url="http://erp.invalid", organization="test"))
        self.orders: Dict[Tuple[OrderKind, str], Order] = {}
        for order in orders or []:
            self.add(order)
        self.items = list(items or [])
        self.fetches: List[Tuple[OrderKind, str]] = []
        self.pushed: List[Order] = []
        self.status_updates: List[Tuple[OrderKind, str, str]] = []
        self.item_requests: List = []
        self._failures: Dict[Tuple[str, Optional[str]], Exception] = {}

    def add(self, order: Order) -> None:
        self.orders[(order.kind, order.number)] = order

    def fail(self, operation: str, number: Optional[str], error: Exception) -> None:
        self._failures[(operation, number)] = error

    def _check(self, operation: str, number: Optional[str] = None) -> None:
        error = self._failures.get((operation, number)) or self._failures.get((operation, None))
        if error is not None:
            raise error

    async def connect(self) -> bool:
        return True

    async def disconnect(self) -> None:
        pass

    async def fetch_order(self, kind, number):
        self.fetches.append((kind, number))
        self._check("fetch", number)
        order = self.orders.get((kind, number))
        if order is None:
            raise UnknownOrder(kind, number)
        return order.model_copy(deep=True)

    async def list_orders(self, kind, warehouse=None, status=None):
        self._check("list")
        return [
            o.model_copy(deep=True) for (k, _), o in self.orders.items()
            if k == kind and (status is None or o.status == status)
        ]

    async def push_order_update(self, order):
        self._check("push", order.number)
        self.pushed.append(order.model_copy(deep=True))

    async def push_status_only(self, kind, number, status):
        self._check("status", number)
        self.status_updates.append((kind, number, status))

    async def fetch_items_since(self, timestamp=None):
        self.item_requests.append(timestamp)
        self._check("items")
        return list(self.items)


def make_order(kind: OrderKind, number: str, *lines, status: str = "NEW", **fields) -> Order:
    """Order with (line_number, item_code, quantity) tuples as lines."""
    return Order(
        kind=kind,
        number=number,
        status=status,
        date="2024-05-02",
        lines=[
            OrderLine(line_number=str(rn), item_code=item, quantity=str(qty), description=f"Item {item}")
            for rn, item, qty in lines
        ],
        **fields,
    )


def return_file_xml(document_type: str, *records) -> bytes:
    """Return file with (order_number, line_number, delivered[, location]) records."""
    rows = []
    for record in records:
        order_number, line_number, delivered = record[:3]
        location = f"<LocationInfo>{record[3]}</LocationInfo>" if len(record) > 3 else ""
        rows.append(
            f"<Data><OrderNumber>{order_number}</OrderNumber><LineNumber>{line_number}</LineNumber>"
            f"<Delivered>{delivered}</Delivered>{location}</Data>"
        )
    return f"<Tcplus><{document_type}>{''.join(rows)}</{document_type}></Tcplus>".encode("utf-8")


@dataclass
class ExchangeDirs:
    results: ExchangeDirectory
    orders: ExchangeDirectory
    purchase_orders: ExchangeDirectory
    items: ExchangeDirectory
    confirmations: ExchangeDirectory


@pytest.fixture
def exchange(tmp_path) -> ExchangeDirs:
    return ExchangeDirs(
        results=ExchangeDirectory(tmp_path / "results"),
        orders=ExchangeDirectory(tmp_path / "orders"),
        purchase_orders=ExchangeDirectory(tmp_path / "purchase_orders"),
        items=ExchangeDirectory(tmp_path / "items"),
        confirmations=ExchangeDirectory(tmp_path / "confirmations"),
    )


@pytest.fixture
def statuses() -> OrderStatusConfig:
    return OrderStatusConfig()


@pytest.fixture
def erp() -> FakeERPConnector:
    return FakeERPConnector()
