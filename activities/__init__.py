"""Activity definitions module."""

from activities.sync import (
    sync_items,
    sync_deliveries,
    sync_transfers,
    process_return_files,
    SyncItemsInput,
    SyncItemsOutput,
)

__all__ = [
    "sync_items",
    "sync_deliveries",
    "sync_transfers",
    "process_return_files",
    "SyncItemsInput",
    "SyncItemsOutput",
]
