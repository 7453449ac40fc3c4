"""Directo connector: XML mapping, HTTP client retries, and connector calls."""

import asyncio
import xml.etree.ElementTree as ET
from datetime import datetime
from unittest.mock import AsyncMock

import aiohttp
import pytest

from connectors.directo import DirectoApiClient, DirectoApiConfig, DirectoConnector, RetryConfig
from connectors.directo.directo_models import (
    build_put_payload,
    check_update_response,
    item_from_element,
    order_from_element,
    order_to_element,
    parse_transport,
    status_only_element,
)
from connectors.erp_base import CommitError, ERPConfig, InvalidOrderRecord, TransportError, UnknownOrder
from core.models import ItemTracking, OrderKind


DELIVERY_XML = """<?xml version="1.0"?>
<transport>
  <delivery number="1001" customercode="C1" customername="Acme" date="02.05.2024 10:00" ts="1" status="NEW" stock="WH1">
    <rows>
      <row rn="1" item="SKU-1" qty="2.000" name="Widget" comment="fragile" movedqty="5"/>
      <row rn="2" item="SKU-2" qty="0" name="Freebie"/>
    </rows>
  </delivery>
</transport>"""

MOVEMENT_XML = """<transport>
  <movement number="77" date="2024-05-02" ts="1" user="ANN" confirmed="0" fromstock="A" tostock="WH1" text="x" status="NEW">
    <rows><row rn="1" item="SKU-1" qty="3"/></rows>
  </movement>
</transport>"""

OK_RESULT = '<results><Result Type="0" Desc="OK"/></results>'


# =============================================================================
# XML mapping
# =============================================================================

class TestParsing:

    def test_order_from_delivery(self):
        (element,) = parse_transport(DELIVERY_XML, "delivery")
        order = order_from_element(element, OrderKind.DELIVERY)
        assert order.number == "1001"
        assert order.customer_name == "Acme"
        assert order.date.isoformat() == "2024-05-02"
        assert [line.line_number for line in order.lines] == ["1", "2"]
        assert order.lines[0].comment == "fragile"
        assert order.lines[0].moved_qty == 0
        assert order.lines[0].attributes["movedqty"] == "5"
        assert order.positive_lines() == [order.lines[0]]

    def test_no_transport_root(self):
        assert parse_transport("<error>bad key</error>", "delivery") == []

    def test_not_xml(self):
        with pytest.raises(TransportError):
            parse_transport("<<<", "delivery")

    def test_item(self):
        element = ET.fromstring('<item code="SKU-1" name="Widget" type="1" sntype="2" weight="0.25"/>')
        item = item_from_element(element)
        assert item.tracking == ItemTracking.BATCH
        assert item.requires_batch_number
        assert not item.requires_serial_number
        assert str(item.weight_kg) == "0.25"

    def test_item_without_weight_or_tracking(self):
        item = item_from_element(ET.fromstring('<item code="SVC" type="2" weight=""/>'))
        assert item.tracking == ItemTracking.NONE
        assert item.weight_kg is None


class TestSerialization:

    def test_full_update_carries_rows_and_status(self):
        (element,) = parse_transport(DELIVERY_XML, "delivery")
        order = order_from_element(element, OrderKind.DELIVERY)
        order.lines[0].moved_qty = 2
        order.lines[0].serial_or_batch = "LOT-1"
        order.status = "READY_FROM_WMS"

        out = order_to_element(order, appkey="KEY")

        assert out.tag == "delivery"
        assert out.get("status") == "READY_FROM_WMS"
        assert out.get("appkey") == "KEY"
        assert out.get("customercode") == "C1"
        rows = out.findall("rows/row")
        assert rows[0].get("movedqty") == "2"
        assert rows[0].get("sn") == "LOT-1"
        assert rows[1].get("movedqty") == "0"

    def test_status_only_delivery_drops_rows_and_dates(self):
        (element,) = parse_transport(DELIVERY_XML, "delivery")
        out = status_only_element(element, OrderKind.DELIVERY, "MOVED_TO_WMS", "KEY")
        assert out.find("rows") is None
        assert "date" not in out.attrib and "ts" not in out.attrib
        assert out.get("status") == "MOVED_TO_WMS"
        assert out.get("customercode") == "C1"

    def test_status_only_transfer_drops_managed_fields(self):
        (element,) = parse_transport(MOVEMENT_XML, "movement")
        out = status_only_element(element, OrderKind.TRANSFER, "MOVED_TO_WMS", "KEY")
        for name in ("date", "ts", "user", "confirmed", "fromstock", "tostock", "text"):
            assert name not in out.attrib
        assert out.get("number") == "77"

    def test_put_payload_root(self):
        payload = build_put_payload(OrderKind.TRANSFER, [ET.Element("movement", {"number": "1"})])
        assert payload.startswith('<?xml version="1.0" encoding="utf-8"?><movements>')


class TestUpdateResponse:

    def test_success(self):
        check_update_response(OK_RESULT, "1")

    def test_refused(self):
        with pytest.raises(CommitError) as info:
            check_update_response('<results><Result Type="1" Desc="Document confirmed"/></results>', "1")
        assert info.value.result_code == "1"
        assert "Document confirmed" in str(info.value)

    def test_missing_result(self):
        with pytest.raises(TransportError):
            check_update_response("<html>oops</html>", "1")


# =============================================================================
# HTTP client
# =============================================================================

def _client(max_retries=2):
    return DirectoApiClient(DirectoApiConfig(
        organization="acme",
        api_key="SECRET",
        retry_config=RetryConfig(max_retries=max_retries, base_delay=0),
    ))


class TestApiClient:

    def test_config_requires_credentials(self):
        with pytest.raises(ValueError):
            DirectoApiConfig(organization="", api_key="x")
        with pytest.raises(ValueError):
            DirectoApiConfig(organization="acme", api_key="")

    def test_endpoint_url(self):
        config = DirectoApiConfig(organization="acme", api_key="k", base_url="https://erp.example/xmlcore/")
        assert config.endpoint_url == "https://erp.example/xmlcore/acme/xmlcore.asp"

    def test_get_builds_query_and_skips_empty_filters(self):
        client = _client()
        client._request = AsyncMock(return_value=(200, "<transport/>"))

        asyncio.run(client.get("delivery", stock="WH1", status=None))

        params = client._request.call_args.kwargs["params"]
        assert params == {"key": "SECRET", "get": "1", "what": "delivery", "stock": "WH1"}

    def test_get_retries_server_errors(self):
        client = _client()
        client._request = AsyncMock(side_effect=[(503, "busy"), (200, "<transport/>")])
        assert asyncio.run(client.get("item")) == "<transport/>"
        assert client._request.await_count == 2

    def test_get_gives_up_after_retries(self):
        client = _client(max_retries=1)
        client._request = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
        with pytest.raises(TransportError):
            asyncio.run(client.get("item"))
        assert client._request.await_count == 2

    def test_client_error_status_is_not_retried(self):
        client = _client()
        client._request = AsyncMock(return_value=(401, "denied"))
        with pytest.raises(TransportError) as info:
            asyncio.run(client.get("item"))
        assert info.value.status_code == 401
        assert client._request.await_count == 1

    def test_put_is_not_retried(self):
        client = _client()
        client._request = AsyncMock(return_value=(500, "error"))
        with pytest.raises(TransportError):
            asyncio.run(client.put("delivery", "<deliveries/>"))
        assert client._request.await_count == 1
        assert client._request.call_args.kwargs["data"] == {
            "xmldata": "<deliveries/>", "put": "1", "what": "delivery",
        }


# =============================================================================
# Connector
# =============================================================================

def _connector():
    connector = DirectoConnector(
        ERPConfig(erp_type="directo", base_url="https://erp.example/xmlcore", organization="acme"),
        api_key="SECRET",
    )
    connector.client.get = AsyncMock()
    connector.client.put = AsyncMock(return_value=OK_RESULT)
    return connector


class TestConnector:

    def test_fetch_order(self):
        erp = _connector()
        erp.client.get.return_value = DELIVERY_XML
        order = asyncio.run(erp.fetch_order(OrderKind.DELIVERY, "1001"))
        assert order.number == "1001"
        erp.client.get.assert_awaited_once_with("delivery", number="1001")

    def test_fetch_missing_order(self):
        erp = _connector()
        erp.client.get.return_value = "<transport></transport>"
        with pytest.raises(UnknownOrder):
            asyncio.run(erp.fetch_order(OrderKind.TRANSFER, "9"))

    def test_fetch_order_with_unparseable_date(self):
        erp = _connector()
        erp.client.get.return_value = DELIVERY_XML.replace("02.05.2024 10:00", "not-a-date")
        with pytest.raises(InvalidOrderRecord) as exc_info:
            asyncio.run(erp.fetch_order(OrderKind.DELIVERY, "1001"))
        assert exc_info.value.order_number == "1001"
        assert not exc_info.value.is_transient

    def test_fetch_order_with_unparseable_quantity(self):
        erp = _connector()
        erp.client.get.return_value = DELIVERY_XML.replace('qty="2.000"', 'qty="lots"')
        with pytest.raises(InvalidOrderRecord):
            asyncio.run(erp.fetch_order(OrderKind.DELIVERY, "1001"))

    def test_list_skips_unparseable_records(self):
        erp = _connector()
        erp.client.get.return_value = MOVEMENT_XML.replace(
            "</transport>", '<movement number="78" date="bogus"/></transport>'
        )
        orders = asyncio.run(erp.list_orders(OrderKind.TRANSFER, warehouse="WH1"))
        assert [o.number for o in orders] == ["77"]

    def test_list_transfers_filters_by_receiving_stock(self):
        erp = _connector()
        erp.client.get.return_value = MOVEMENT_XML
        orders = asyncio.run(erp.list_orders(OrderKind.TRANSFER, warehouse="WH1", status="NEW"))
        assert [o.number for o in orders] == ["77"]
        erp.client.get.assert_awaited_once_with("movement", tostock="WH1", status="NEW")

    def test_list_needs_a_filter(self):
        with pytest.raises(ValueError):
            asyncio.run(_connector().list_orders(OrderKind.DELIVERY))

    def test_push_status_only_refetches_and_strips(self):
        erp = _connector()
        erp.client.get.return_value = DELIVERY_XML
        asyncio.run(erp.push_status_only(OrderKind.DELIVERY, "1001", "MOVED_TO_WMS"))

        what, payload = erp.client.put.call_args.args
        assert what == "delivery"
        root = ET.fromstring(payload.split("?>", 1)[1])
        (record,) = root.findall("delivery")
        assert record.get("status") == "MOVED_TO_WMS"
        assert record.get("appkey") == "SECRET"
        assert record.find("rows") is None

    def test_push_order_update_refused(self):
        erp = _connector()
        erp.client.get.return_value = DELIVERY_XML
        erp.client.put.return_value = '<results><Result Type="2"/></results>'
        order = asyncio.run(erp.fetch_order(OrderKind.DELIVERY, "1001"))
        with pytest.raises(CommitError):
            asyncio.run(erp.push_order_update(order))

    def test_items_since_timestamp(self):
        erp = _connector()
        erp.client.get.return_value = '<transport><item code="A" type="1"/><item name="no code"/></transport>'
        items = asyncio.run(erp.fetch_items_since(datetime(2024, 5, 2, 8, 30)))
        assert [i.code for i in items] == ["A"]
        erp.client.get.assert_awaited_once_with("item", ts="02.05.2024 08:30")

    def test_all_items(self):
        erp = _connector()
        erp.client.get.return_value = "<transport/>"
        asyncio.run(erp.fetch_items_since(None))
        erp.client.get.assert_awaited_once_with("item", ts="1.1.1970")
