"""Pass-scoped order working set.

Every order referenced during one pass over the return files is fetched
from the ERP at most once. Later references, from the same file or from a
later file in the same pass, get the same instance back including the
moved quantities accumulated so far.
"""

from typing import Dict, Tuple, Union

from connectors.erp_base import ERPConnector, UnknownOrder
from core.models import Order, OrderKind
from core.observability import get_logger

logger = get_logger(__name__)

CacheKey = Tuple[OrderKind, str]


class OrderCache:
    """Memoizes ERP order fetches for one reconciliation pass.

    A fresh fetch has its moved quantities reset to zero, so quantities
    only ever come from the return records applied in this pass.
    """

    def __init__(self, erp: ERPConnector):
        self.erp = erp
        self._orders: Dict[CacheKey, Union[Order, UnknownOrder]] = {}
        self.fetch_count = 0

    async def get(self, kind: OrderKind, number: str) -> Order:
        """Return the working copy of an order, fetching it on first use.

        Raises:
            UnknownOrder: The ERP has no such order (remembered for the pass)
            TransportError: The fetch failed; the next call will try again
        """
        key = (kind, number)
        cached = self._orders.get(key)
        if isinstance(cached, UnknownOrder):
            raise cached
        if cached is not None:
            return cached

        self.fetch_count += 1
        try:
            order = await self.erp.fetch_order(kind, number)
        except UnknownOrder as e:
            self._orders[key] = e
            raise

        order.reset_moved_quantities()
        self._orders[key] = order
        logger.debug(f"Loaded {kind.value.lower()} {number} into the working set")
        return order

    def __contains__(self, key: CacheKey) -> bool:
        return isinstance(self._orders.get(key), Order)

    def __len__(self) -> int:
        return sum(1 for value in self._orders.values() if isinstance(value, Order))
