"""Return line matching and the pass-scoped order cache."""

import asyncio
import itertools

import pytest

from conftest import FakeERPConnector, make_order
from connectors.erp_base import TransportError, UnknownOrder
from core.models import OrderKind
from reconciliation.errors import MalformedOrderNumber, OrderLineNotFound, UnsupportedOrderType
from reconciliation.matcher import apply_record, match_records
from reconciliation.order_cache import OrderCache
from reconciliation.return_documents import ReturnRecord


def _delivery():
    return make_order(OrderKind.DELIVERY, "00050", (1, "SKU-1", 10), (2, "SKU-2", 5))


class TestOrderCache:

    def test_fetches_each_order_once(self):
        erp = FakeERPConnector([_delivery()])
        cache = OrderCache(erp)

        async def run():
            first = await cache.get(OrderKind.DELIVERY, "00050")
            second = await cache.get(OrderKind.DELIVERY, "00050")
            return first, second

        first, second = asyncio.run(run())
        assert first is second
        assert erp.fetches == [(OrderKind.DELIVERY, "00050")]
        assert (OrderKind.DELIVERY, "00050") in cache
        assert len(cache) == 1

    def test_fresh_fetch_resets_moved_quantities(self):
        order = _delivery()
        order.lines[0].moved_qty = 9
        cache = OrderCache(FakeERPConnector([order]))
        fetched = asyncio.run(cache.get(OrderKind.DELIVERY, "00050"))
        assert [line.moved_qty for line in fetched.lines] == [0, 0]

    def test_unknown_order_is_remembered(self):
        erp = FakeERPConnector()
        cache = OrderCache(erp)

        async def run():
            for _ in range(2):
                with pytest.raises(UnknownOrder):
                    await cache.get(OrderKind.DELIVERY, "404")

        asyncio.run(run())
        assert len(erp.fetches) == 1
        assert len(cache) == 0

    def test_transport_error_is_not_remembered(self):
        erp = FakeERPConnector([_delivery()])
        erp.fail("fetch", "00050", TransportError("timeout"))
        cache = OrderCache(erp)

        async def run():
            with pytest.raises(TransportError):
                await cache.get(OrderKind.DELIVERY, "00050")
            erp._failures.clear()
            return await cache.get(OrderKind.DELIVERY, "00050")

        assert asyncio.run(run()).number == "00050"
        assert len(erp.fetches) == 2


class TestApplyRecord:

    def test_accumulates(self):
        order = _delivery()
        apply_record(order, ReturnRecord("D00050", "1", delivered_qty=3))
        apply_record(order, ReturnRecord("D00050", "1", delivered_qty=4))
        assert order.lines[0].moved_qty == 7

    def test_line_number_match_ignores_leading_zeros(self):
        order = _delivery()
        apply_record(order, ReturnRecord("D00050", "02", delivered_qty=1))
        assert order.lines[1].moved_qty == 1

    def test_location_info_becomes_batch(self):
        order = _delivery()
        apply_record(order, ReturnRecord("D00050", "1", delivered_qty=1, location_info="LOT-9"))
        assert order.lines[0].serial_or_batch == "LOT-9"

    def test_falls_back_to_article_number(self):
        order = _delivery()
        apply_record(order, ReturnRecord("D00050", None, article_number="SKU-2", delivered_qty=2))
        assert order.lines[1].moved_qty == 2

    def test_unknown_line(self):
        with pytest.raises(OrderLineNotFound):
            apply_record(_delivery(), ReturnRecord("D00050", "9", delivered_qty=1))


class TestMatchRecords:

    def _match(self, erp, records):
        return asyncio.run(match_records(records, OrderCache(erp)))

    def test_groups_records_by_order(self):
        erp = FakeERPConnector([
            _delivery(),
            make_order(OrderKind.TRANSFER, "00050", (1, "SKU-1", 2)),
        ])
        result = self._match(erp, [
            ReturnRecord("D00050", "1", delivered_qty=3),
            ReturnRecord("T00050", "1", delivered_qty=2),
            ReturnRecord("D00050", "1", delivered_qty=4),
        ])
        assert not result.failures
        delivery = result.matched[(OrderKind.DELIVERY, "00050")]
        assert delivery.records_applied == 2
        assert delivery.order.lines[0].moved_qty == 7
        assert result.matched[(OrderKind.TRANSFER, "00050")].order.lines[0].moved_qty == 2

    def test_accumulation_is_order_independent(self):
        records = [
            ReturnRecord("D00050", "1", delivered_qty=3),
            ReturnRecord("D00050", "2", delivered_qty=1),
            ReturnRecord("D00050", "1", delivered_qty=4),
            ReturnRecord("D00050", "2", delivered_qty=2),
        ]
        totals = set()
        for permutation in itertools.permutations(records):
            result = self._match(FakeERPConnector([_delivery()]), list(permutation))
            order = result.matched[(OrderKind.DELIVERY, "00050")].order
            totals.add(tuple(line.moved_qty for line in order.lines))
        assert totals == {(7, 3)}

    def test_manual_records_are_skipped(self):
        erp = FakeERPConnector([_delivery()])
        result = self._match(erp, [
            ReturnRecord("MP1", "1", delivered_qty=1),
            ReturnRecord("MS2", "1", delivered_qty=1),
            ReturnRecord("D00050", "1", delivered_qty=1),
        ])
        assert len(result.skipped) == 2
        assert not result.failures
        assert erp.fetches == [(OrderKind.DELIVERY, "00050")]

    def test_unsupported_and_malformed_numbers_fail_only_their_order(self):
        erp = FakeERPConnector([_delivery()])
        result = self._match(erp, [
            ReturnRecord("00050", "1", delivered_qty=1),
            ReturnRecord("X1", "1", delivered_qty=1),
            ReturnRecord("ABC", "1", delivered_qty=1),
            ReturnRecord("D00050", "1", delivered_qty=1),
        ])
        assert isinstance(result.failures["00050"], UnsupportedOrderType)
        assert isinstance(result.failures["X1"], UnsupportedOrderType)
        assert isinstance(result.failures["ABC"], MalformedOrderNumber)
        assert list(result.matched) == [(OrderKind.DELIVERY, "00050")]

    def test_failed_order_is_dropped_and_later_records_ignored(self):
        erp = FakeERPConnector([_delivery()])
        result = self._match(erp, [
            ReturnRecord("D00050", "1", delivered_qty=1),
            ReturnRecord("D00050", "9", delivered_qty=1),
            ReturnRecord("D00050", "2", delivered_qty=1),
        ])
        assert isinstance(result.failures["D00050"], OrderLineNotFound)
        assert result.matched == {}

    def test_unknown_order_fails_its_records(self):
        result = self._match(FakeERPConnector(), [ReturnRecord("D1", "1", delivered_qty=1)])
        assert isinstance(result.failures["D1"], UnknownOrder)
