"""Sync workflows.

- ReconciliationTickWorkflow: one tick of the order exchange, started every
  minute by a Temporal Schedule with overlap SKIP, so ticks never overlap.
  Runs delivery intake, transfer intake, then the return file pass.
- ItemSyncWorkflow: long-running loop that rewrites the item catalog every
  few minutes. The sync cursor lives in workflow state and is carried over
  on continue-as-new.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from activities.sync import (
        process_return_files,
        sync_deliveries,
        sync_items,
        sync_transfers,
        SyncItemsInput,
    )


TASK_QUEUE = "wms-sync"

TICK_INTERVAL = timedelta(minutes=1)
ITEM_SYNC_INTERVAL = timedelta(minutes=5)

# Keep workflow history bounded
ITEM_SYNC_ITERATIONS_PER_RUN = 100

ACTIVITY_OPTIONS = {
    "start_to_close_timeout": timedelta(minutes=5),
    "retry_policy": RetryPolicy(
        maximum_attempts=3,
        initial_interval=timedelta(seconds=5),
        maximum_interval=timedelta(minutes=1),
        backoff_coefficient=2.0,
        # A missing setting will not fix itself
        non_retryable_error_types=["ConfigurationError"],
    ),
}


@workflow.defn
class ReconciliationTickWorkflow:
    """One scheduled pass over orders and return files."""

    @workflow.run
    async def run(self) -> dict:
        workflow.logger.info("Starting reconciliation tick")

        deliveries = await workflow.execute_activity(sync_deliveries, **ACTIVITY_OPTIONS)
        transfers = await workflow.execute_activity(sync_transfers, **ACTIVITY_OPTIONS)
        returns = await workflow.execute_activity(process_return_files, **ACTIVITY_OPTIONS)

        return {
            "deliveries": deliveries,
            "transfers": transfers,
            "returns": returns,
        }


@dataclass
class ItemSyncInput:
    """Input for ItemSyncWorkflow.

    Attributes:
        cursor: ISO timestamp of the last successful sync, None to start with a full fetch
        interval_seconds: Pause between syncs
    """
    cursor: Optional[str] = None
    interval_seconds: int = int(ITEM_SYNC_INTERVAL.total_seconds())


@workflow.defn
class ItemSyncWorkflow:
    """Periodic item catalog sync with an explicit cursor."""

    def __init__(self) -> None:
        self._cursor: Optional[str] = None

    @workflow.query
    def cursor(self) -> Optional[str]:
        return self._cursor

    @workflow.run
    async def run(self, input: ItemSyncInput) -> None:
        self._cursor = input.cursor

        for _ in range(ITEM_SYNC_ITERATIONS_PER_RUN):
            result = await workflow.execute_activity(
                sync_items,
                SyncItemsInput(cursor=self._cursor),
                **ACTIVITY_OPTIONS,
            )
            if result.succeeded:
                self._cursor = result.cursor
            else:
                workflow.logger.warning(f"Item sync failed, keeping cursor {self._cursor}: {result.error}")

            await workflow.sleep(timedelta(seconds=input.interval_seconds))

        workflow.continue_as_new(ItemSyncInput(cursor=self._cursor, interval_seconds=input.interval_seconds))
