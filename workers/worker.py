"""Worker for the ERP/WMS sync.

Polls the `wms-sync` task queue and runs the tick and item sync workflows
together with their activities. One worker process is enough; the schedule
never starts overlapping ticks.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from temporalio.worker import Worker

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from temporal_client import get_temporal_client
from core.config import load_config
from core.observability import configure_logging, get_logger
from workflows.sync_workflows import ItemSyncWorkflow, ReconciliationTickWorkflow, TASK_QUEUE
from activities.sync import process_return_files, sync_deliveries, sync_items, sync_transfers

logger = get_logger(__name__)

WORKFLOWS = [ReconciliationTickWorkflow, ItemSyncWorkflow]

ACTIVITIES = [
    sync_items,
    sync_deliveries,
    sync_transfers,
    process_return_files,
]


async def run_worker(task_queue: str = TASK_QUEUE):
    """Start a worker on the task queue and run until interrupted."""
    try:
        client = await get_temporal_client()
        logger.info(f"Connected to Temporal: {client.namespace}")

        worker = Worker(
            client,
            task_queue=task_queue,
            workflows=WORKFLOWS,
            activities=ACTIVITIES,
        )
        logger.info(f"Worker created for queue '{task_queue}':")
        logger.info(f"  - Workflows: {len(WORKFLOWS)}")
        logger.info(f"  - Activities: {len(ACTIVITIES)}")

        logger.info("Worker running... (Ctrl+C to stop)")
        await worker.run()
    except Exception as e:
        logger.error(f"Worker error: {e}", exc_info=True)
        raise


def main():
    """Entry point for worker with CLI args."""
    parser = argparse.ArgumentParser(description="ERP/WMS sync Temporal worker")
    parser.add_argument(
        "--queue", "-q",
        default=TASK_QUEUE,
        help=f"Task queue to poll (default: {TASK_QUEUE})",
    )
    args = parser.parse_args()

    # Fail fast on a broken configuration instead of on the first activity
    config = load_config()
    configure_logging(level=config.log_level, json_format=config.log_json)

    try:
        asyncio.run(run_worker(task_queue=args.queue))
    except KeyboardInterrupt:
        logger.info("Worker interrupted by user")


if __name__ == "__main__":
    main()
