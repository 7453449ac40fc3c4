"""Item catalog synchronization.

The WMS keeps one catalog snapshot (items.xml) that is rewritten on every
sync. The window of items to fetch is bounded by a SyncCursor: empty at
process start (full fetch), then the start time of the last successful sync
minus a history margin so edits made while a sync was running are not lost.

The cursor is a plain value. The caller passes it in, gets the next one back,
and keeps it only if it wants to; nothing is persisted.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from connectors.erp_base import ERPConnector, ERPError
from core.models import Item
from core.observability import get_logger
from core.storage import ExchangeDirectory
from wms.documents import ITEM_CATALOG_FILENAME, build_item_catalog

logger = get_logger(__name__)

# Directo item type for physical stock items; services and kits are skipped
STOCK_ITEM_TYPE = "1"


@dataclass(frozen=True)
class SyncCursor:
    """Start time of the last successful item sync, or None before the first."""
    last_success: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        return self.last_success is None

    def window_start(self, history_hours: float) -> Optional[datetime]:
        if self.last_success is None:
            return None
        return self.last_success - timedelta(hours=history_hours)

    def to_iso(self) -> Optional[str]:
        return self.last_success.isoformat() if self.last_success else None

    @classmethod
    def from_iso(cls, value: Optional[str]) -> "SyncCursor":
        return cls(datetime.fromisoformat(value) if value else None)


@dataclass
class ItemSyncResult:
    cursor: SyncCursor
    succeeded: bool
    items_written: int = 0
    error: Optional[str] = None


def stock_items(items: List[Item]) -> List[Item]:
    return [item for item in items if item.item_type == STOCK_ITEM_TYPE]


async def synchronize_items(
    erp: ERPConnector,
    items_dir: ExchangeDirectory,
    cursor: SyncCursor,
    history_hours: float = 6,
) -> ItemSyncResult:
    """Fetch changed items and rewrite the WMS catalog.

    On failure the given cursor is returned unchanged, so the next run
    covers the same window again.
    """
    sync_time = datetime.now()
    since = cursor.window_start(history_hours)
    if since is None:
        logger.info("Getting all items")
    else:
        logger.info(f"Getting items changed since {since:%d.%m.%Y %H:%M}")

    try:
        items = stock_items(await erp.fetch_items_since(since))
        logger.info(f"Found {len(items)} items")
        items_dir.write(build_item_catalog(items), ITEM_CATALOG_FILENAME)
    except (ERPError, OSError) as e:
        logger.error(f"Item synchronization failed: {e}")
        return ItemSyncResult(cursor=cursor, succeeded=False, error=str(e))

    return ItemSyncResult(cursor=SyncCursor(sync_time), succeeded=True, items_written=len(items))
