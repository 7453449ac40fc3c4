"""Workflow definitions module."""

from workflows.sync_workflows import (
    ItemSyncInput,
    ItemSyncWorkflow,
    ReconciliationTickWorkflow,
    TASK_QUEUE,
)

__all__ = ["ItemSyncInput", "ItemSyncWorkflow", "ReconciliationTickWorkflow", "TASK_QUEUE"]
