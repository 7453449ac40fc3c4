"""Item catalog sync and its cursor."""

import asyncio
import xml.etree.ElementTree as ET
from datetime import datetime, timedelta

from conftest import FakeERPConnector
from connectors.erp_base import TransportError
from core.models import Item
from intake.items import SyncCursor, synchronize_items


ITEMS = [
    Item(code="A", name="Widget", item_type="1"),
    Item(code="SVC", name="Installation", item_type="2"),
]


def _sync(erp, exchange, cursor, history_hours=6):
    return asyncio.run(synchronize_items(erp, exchange.items, cursor, history_hours=history_hours))


def test_empty_cursor_fetches_everything(exchange):
    erp = FakeERPConnector(items=ITEMS)
    result = _sync(erp, exchange, SyncCursor())

    assert erp.item_requests == [None]
    assert result.succeeded
    assert not result.cursor.is_empty
    assert result.items_written == 1

    root = ET.fromstring((exchange.items.base_path / "items.xml").read_bytes())
    assert [e.findtext("ItemCode") for e in root.findall("ItemData")] == ["A"]


def test_cursor_window_includes_history(exchange):
    erp = FakeERPConnector(items=ITEMS)
    last = datetime(2024, 5, 2, 12, 0)

    _sync(erp, exchange, SyncCursor(last), history_hours=6)

    assert erp.item_requests == [last - timedelta(hours=6)]


def test_cursor_advances_only_on_success(exchange):
    erp = FakeERPConnector(items=ITEMS)
    erp.fail("items", None, TransportError("down"))
    cursor = SyncCursor(datetime(2024, 5, 2, 12, 0))

    result = _sync(erp, exchange, cursor)

    assert not result.succeeded
    assert result.cursor == cursor
    assert not (exchange.items.base_path / "items.xml").exists()


def test_new_cursor_is_sync_start_time(exchange):
    before = datetime.now()
    result = _sync(FakeERPConnector(items=ITEMS), exchange, SyncCursor())
    assert before <= result.cursor.last_success <= datetime.now()


def test_cursor_iso_round_trip():
    cursor = SyncCursor(datetime(2024, 5, 2, 12, 30))
    assert SyncCursor.from_iso(cursor.to_iso()) == cursor
    assert SyncCursor.from_iso(None).is_empty
    assert SyncCursor().to_iso() is None
