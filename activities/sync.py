"""Scheduled sync jobs and their Temporal activities.

Each job opens its own ERP connection, runs once, and reports a JSON-able
summary. Per-order and per-file failures are handled inside the jobs and
never fail the activity; an activity failure means a bug or a broken
configuration (ConfigurationError is not retried).

The plain `run_*` coroutines are also used by scripts/run_once.py to run a
job without a Temporal server.
"""

import time
from dataclasses import dataclass
from typing import Optional

from temporalio import activity

from connectors.directo import DirectoConnector
from core.config import AppConfig, load_config
from core.observability import (
    configure_logging,
    record_job_completed,
    record_job_failed,
    record_job_started,
    with_correlation,
)
from core.observability.logging import log_job_complete, log_job_error, log_job_start
from core.storage import ExchangeDirectory
from intake.items import SyncCursor, synchronize_items
from intake.orders import synchronize_deliveries, synchronize_transfers
from reconciliation.engine import ReturnFileProcessor


JOB_ITEMS = "items"
JOB_DELIVERIES = "deliveries"
JOB_TRANSFERS = "transfers"
JOB_RETURNS = "returns"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class SyncItemsInput:
    """Input for sync_items.

    Attributes:
        cursor: ISO timestamp of the last successful sync, None for a full fetch
    """
    cursor: Optional[str] = None


@dataclass
class SyncItemsOutput:
    cursor: Optional[str]
    succeeded: bool
    items_written: int = 0
    error: Optional[str] = None


# =============================================================================
# Jobs
# =============================================================================

class _JobRun:
    """Times a job and records start/completion/failure."""

    def __init__(self, job_name: str):
        self.job_name = job_name
        self._started = 0.0

    def __enter__(self):
        self._started = time.monotonic()
        record_job_started(self.job_name)
        log_job_start(self.job_name)
        return self

    def __exit__(self, exc_type, exc, tb):
        duration_ms = (time.monotonic() - self._started) * 1000
        if exc is None:
            record_job_completed(self.job_name, duration_ms)
            log_job_complete(self.job_name, duration_ms=round(duration_ms, 1))
        else:
            record_job_failed(self.job_name)
            log_job_error(self.job_name, str(exc))
        return False


def _load() -> AppConfig:
    config = load_config()
    configure_logging(level=config.log_level, json_format=config.log_json)
    return config


async def run_item_sync(config: AppConfig, cursor: SyncCursor):
    with with_correlation(job=JOB_ITEMS), _JobRun(JOB_ITEMS):
        async with DirectoConnector.from_app_config(config) as erp:
            return await synchronize_items(
                erp,
                ExchangeDirectory(config.directories.items),
                cursor,
                history_hours=config.item_sync_history_hours,
            )


async def run_delivery_intake(config: AppConfig):
    with with_correlation(job=JOB_DELIVERIES), _JobRun(JOB_DELIVERIES):
        async with DirectoConnector.from_app_config(config) as erp:
            return await synchronize_deliveries(
                erp,
                ExchangeDirectory(config.directories.orders),
                config.warehouse_location,
                config.order_statuses,
            )


async def run_transfer_intake(config: AppConfig):
    with with_correlation(job=JOB_TRANSFERS), _JobRun(JOB_TRANSFERS):
        async with DirectoConnector.from_app_config(config) as erp:
            return await synchronize_transfers(
                erp,
                ExchangeDirectory(config.directories.purchase_orders),
                config.warehouse_location,
                config.order_statuses,
            )


async def run_return_pass(config: AppConfig):
    with with_correlation(job=JOB_RETURNS), _JobRun(JOB_RETURNS):
        async with DirectoConnector.from_app_config(config) as erp:
            return await ReturnFileProcessor.from_app_config(erp, config).run_pass()


# =============================================================================
# Activity Definitions
# =============================================================================

@activity.defn
async def sync_items(input: SyncItemsInput) -> SyncItemsOutput:
    """Rewrite the WMS item catalog from items changed since the cursor."""
    activity.logger.info(f"Item sync from cursor {input.cursor or '(empty)'}")
    result = await run_item_sync(_load(), SyncCursor.from_iso(input.cursor))
    return SyncItemsOutput(
        cursor=result.cursor.to_iso(),
        succeeded=result.succeeded,
        items_written=result.items_written,
        error=result.error,
    )


@activity.defn
async def sync_deliveries() -> dict:
    """Send new deliveries to the WMS as pick orders."""
    result = await run_delivery_intake(_load())
    activity.logger.info(f"Deliveries: {len(result.written)} sent, {len(result.acknowledged)} acknowledged, {len(result.failed)} failed")
    return result.to_dict()


@activity.defn
async def sync_transfers() -> dict:
    """Send new inbound transfers to the WMS as purchase orders."""
    result = await run_transfer_intake(_load())
    activity.logger.info(f"Transfers: {len(result.written)} sent, {len(result.failed)} failed")
    return result.to_dict()


@activity.defn
async def process_return_files() -> dict:
    """Apply pending WMS return files to the ERP."""
    result = await run_return_pass(_load())
    activity.logger.info(f"Return pass {result.pass_id}: {len(result.files)} files")
    return result.to_dict()
