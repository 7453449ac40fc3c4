"""Create the Temporal schedule and long-running workflows for the sync.

- Schedule "wms-reconciliation-tick": starts ReconciliationTickWorkflow
  every minute with overlap policy SKIP. Re-running the script updates the
  existing schedule.
- Workflow "wms-item-sync": the item catalog loop. Left alone if it is
  already running.
"""

import asyncio
import sys
from pathlib import Path
import logging

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from temporalio.client import (
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleIntervalSpec,
    ScheduleOverlapPolicy,
    SchedulePolicy,
    ScheduleSpec,
    ScheduleUpdate,
)
from temporalio.exceptions import WorkflowAlreadyStartedError

from temporal_client import get_temporal_client
from workflows.sync_workflows import (
    ItemSyncInput,
    ItemSyncWorkflow,
    ReconciliationTickWorkflow,
    TASK_QUEUE,
    TICK_INTERVAL,
)


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

TICK_SCHEDULE_ID = "wms-reconciliation-tick"
ITEM_SYNC_WORKFLOW_ID = "wms-item-sync"


def tick_schedule() -> Schedule:
    return Schedule(
        action=ScheduleActionStartWorkflow(
            ReconciliationTickWorkflow.run,
            id=TICK_SCHEDULE_ID,
            task_queue=TASK_QUEUE,
        ),
        spec=ScheduleSpec(intervals=[ScheduleIntervalSpec(every=TICK_INTERVAL)]),
        policy=SchedulePolicy(overlap=ScheduleOverlapPolicy.SKIP),
    )


async def start_schedules():
    client = await get_temporal_client()
    logger.info(f"Connected to Temporal: {client.namespace}")

    schedule = tick_schedule()
    try:
        await client.create_schedule(TICK_SCHEDULE_ID, schedule)
        logger.info(f"Created schedule {TICK_SCHEDULE_ID}")
    except ScheduleAlreadyRunningError:
        handle = client.get_schedule_handle(TICK_SCHEDULE_ID)
        await handle.update(lambda _: ScheduleUpdate(schedule=schedule))
        logger.info(f"Updated schedule {TICK_SCHEDULE_ID}")

    try:
        handle = await client.start_workflow(
            ItemSyncWorkflow.run,
            ItemSyncInput(),
            id=ITEM_SYNC_WORKFLOW_ID,
            task_queue=TASK_QUEUE,
        )
        logger.info(f"Started item sync workflow: {handle.id}")
    except WorkflowAlreadyStartedError:
        logger.info(f"Item sync workflow {ITEM_SYNC_WORKFLOW_ID} already running")


def main():
    """Entry point."""
    try:
        asyncio.run(start_schedules())
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
