"""Run one sync job locally, without a Temporal server.

Usage:
    python scripts/run_once.py returns
    python scripts/run_once.py items --since 2024-05-01T08:00:00
    python scripts/run_once.py tick

Only one run_once process works at a time; a second one exits immediately.
"""

import argparse
import asyncio
import fcntl
import json
import sys
import tempfile
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from activities.sync import (
    run_delivery_intake,
    run_item_sync,
    run_return_pass,
    run_transfer_intake,
)
from core.config import ConfigurationError, load_config
from core.observability import configure_logging, get_logger, get_metrics
from intake.items import SyncCursor

logger = get_logger(__name__)

LOCK_PATH = Path(tempfile.gettempdir()) / "wms-sync-run-once.lock"

JOBS = ["items", "deliveries", "transfers", "returns", "tick"]


async def run_job(job: str, since: str = None) -> dict:
    config = load_config()
    configure_logging(level=config.log_level, json_format=config.log_json)

    if job == "items":
        result = await run_item_sync(config, SyncCursor.from_iso(since))
        return {"cursor": result.cursor.to_iso(), "succeeded": result.succeeded,
                "items_written": result.items_written, "error": result.error}
    if job == "deliveries":
        return (await run_delivery_intake(config)).to_dict()
    if job == "transfers":
        return (await run_transfer_intake(config)).to_dict()
    if job == "returns":
        return (await run_return_pass(config)).to_dict()

    return {
        "deliveries": (await run_delivery_intake(config)).to_dict(),
        "transfers": (await run_transfer_intake(config)).to_dict(),
        "returns": (await run_return_pass(config)).to_dict(),
    }


def main():
    """Entry point."""
    parser = argparse.ArgumentParser(description="Run one ERP/WMS sync job")
    parser.add_argument("job", choices=JOBS)
    parser.add_argument("--since", help="Item sync cursor (ISO timestamp); omit for a full fetch")
    parser.add_argument("--metrics", action="store_true", help="Print the metrics summary afterwards")
    args = parser.parse_args()

    with open(LOCK_PATH, "w") as lock:
        try:
            fcntl.flock(lock, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            print("Another run is in progress", file=sys.stderr)
            return 2

        try:
            result = asyncio.run(run_job(args.job, args.since))
        except ConfigurationError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return 1

    print(json.dumps(result, indent=2, default=str))
    if args.metrics:
        print(json.dumps(get_metrics().get_summary(), indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
