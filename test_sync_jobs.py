"""Scheduled jobs as run by the activities and scripts/run_once.py."""

import asyncio

import pytest

import activities.sync as sync
from conftest import FakeERPConnector, make_order, return_file_xml
from core.config import AppConfig, DirectoConfig, DirectoryConfig
from core.models import Item, OrderKind
from core.observability.metrics import MetricsCollector
from intake.items import SyncCursor


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        directo=DirectoConfig(organization="acme", api_key="SECRET"),
        warehouse_location="WH1",
        directories=DirectoryConfig(
            results=tmp_path / "results",
            orders=tmp_path / "orders",
            purchase_orders=tmp_path / "purchase_orders",
            items=tmp_path / "items",
            confirmations=tmp_path / "confirmations",
        ),
    )


@pytest.fixture
def fake_erp(monkeypatch):
    erp = FakeERPConnector(
        [
            make_order(OrderKind.DELIVERY, "1", (1, "A", 2)),
            make_order(OrderKind.TRANSFER, "2", (1, "A", 2)),
        ],
        items=[Item(code="A", item_type="1")],
    )

    class Factory:
        @staticmethod
        def from_app_config(app_config):
            return erp

    monkeypatch.setattr(sync, "DirectoConnector", Factory)
    return erp


def test_tick_jobs(config, fake_erp):
    deliveries = asyncio.run(sync.run_delivery_intake(config))
    transfers = asyncio.run(sync.run_transfer_intake(config))
    assert deliveries.written == ["1"]
    assert transfers.written == ["2"]
    assert (config.directories.orders / "order_D1.xml").exists()
    assert (config.directories.purchase_orders / "purchase_T2.xml").exists()


def test_return_pass_job(config, fake_erp):
    config.directories.results.mkdir(parents=True)
    (config.directories.results / "r.xml").write_bytes(return_file_xml("PickReturn", ("D1", "1", "2")))

    result = asyncio.run(sync.run_return_pass(config))

    assert [f.disposition.value for f in result.files] == ["DELETED"]
    assert fake_erp.pushed[0].status == config.order_statuses.completed


def test_item_job_records_metrics(config, fake_erp):
    before = MetricsCollector.instance().get_summary()["jobs"]["by_name"].get("items", {}).get("completed", 0)

    result = asyncio.run(sync.run_item_sync(config, SyncCursor()))

    assert result.succeeded
    assert (config.directories.items / "items.xml").exists()
    after = MetricsCollector.instance().get_summary()["jobs"]["by_name"]["items"]["completed"]
    assert after == before + 1
