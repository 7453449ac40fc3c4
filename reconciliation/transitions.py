"""Order status transitions after return matching.

Once a document's records have been accumulated onto their orders, each
order gets its next ERP status and is pushed back in full (lines plus
status) with a single update call.

What "next status" means depends on the kind of return:

- Pick returns (deliveries, and outbound transfers picked like deliveries):
  if nothing was moved the order is only acknowledged and no confirmation
  is written; otherwise a pick confirmation is written and the order is
  completed.
- Purchase returns (inbound transfers): a purchase confirmation is always
  written and the order is completed, even when only part of it arrived.

Per-order state: FETCHED -> LINES_ACCUMULATED -> SKIPPED | UPDATED,
or FAILED from any step.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from connectors.erp_base import ERPConnector, ERPError
from core.config import OrderStatusConfig
from core.models import Order, OrderKind
from core.observability import get_logger, record_order_outcome
from core.storage import ExchangeDirectory, StoredDocument
from reconciliation.matcher import MatchedOrder
from reconciliation.return_documents import ReturnDocumentType
from wms.documents import (
    build_pick_confirmation,
    build_purchase_confirmation,
    confirmation_filename,
)

logger = get_logger(__name__)


class OrderState(str, Enum):
    FETCHED = "FETCHED"
    LINES_ACCUMULATED = "LINES_ACCUMULATED"
    SKIPPED = "SKIPPED"      # acknowledged without a confirmation document
    UPDATED = "UPDATED"      # confirmation written and order completed
    FAILED = "FAILED"


@dataclass
class OrderOutcome:
    """Final state of one order within one return file."""
    order_number: str
    state: OrderState
    kind: Optional[OrderKind] = None
    status: Optional[str] = None
    document: Optional[StoredDocument] = None
    error: Optional[Exception] = None

    @property
    def is_transient_failure(self) -> bool:
        if self.state != OrderState.FAILED or self.error is None:
            return False
        return getattr(self.error, "is_transient", isinstance(self.error, OSError))

    def to_dict(self) -> Dict:
        return {
            "order_number": self.order_number,
            "state": self.state.value,
            "kind": self.kind.value if self.kind else None,
            "status": self.status,
            "document": self.document.path if self.document else None,
            "error": str(self.error) if self.error else None,
        }


# =============================================================================
# Policies
# =============================================================================

@dataclass
class TransitionPlan:
    status: str
    state: OrderState
    document: Optional[bytes] = None


class TransitionPolicy(ABC):
    """Decides the next status of a matched order and its confirmation."""

    name: str = ""

    @abstractmethod
    def plan(self, order: Order, statuses: OrderStatusConfig) -> TransitionPlan:
        pass


class PickTransitionPolicy(TransitionPolicy):
    """Acknowledge untouched picks, complete the rest."""

    name = "pick"

    def plan(self, order: Order, statuses: OrderStatusConfig) -> TransitionPlan:
        if not order.moved_lines():
            return TransitionPlan(status=statuses.acknowledged, state=OrderState.SKIPPED)
        return TransitionPlan(
            status=statuses.completed,
            state=OrderState.UPDATED,
            document=build_pick_confirmation(order),
        )


class InboundTransitionPolicy(TransitionPolicy):
    """Inbound transfers are always confirmed and completed."""

    name = "inbound"

    def plan(self, order: Order, statuses: OrderStatusConfig) -> TransitionPlan:
        return TransitionPlan(
            status=statuses.completed,
            state=OrderState.UPDATED,
            document=build_purchase_confirmation(order),
        )


POLICIES: Dict[ReturnDocumentType, TransitionPolicy] = {
    ReturnDocumentType.PICK_RETURN: PickTransitionPolicy(),
    ReturnDocumentType.PURCHASE_RETURN: InboundTransitionPolicy(),
}


def policy_for(document_type: ReturnDocumentType) -> TransitionPolicy:
    """Policy for a reconcilable document type.

    Raises:
        KeyError: For InventoryReturn and Unknown, which are never reconciled
    """
    return POLICIES[document_type]


# =============================================================================
# Driver
# =============================================================================

class StatusTransitionDriver:
    """Pushes the full order update, then writes the confirmation (if any).

    A confirmation is only written once the ERP accepted the update.
    """

    def __init__(self, erp: ERPConnector, statuses: OrderStatusConfig, confirmations: ExchangeDirectory):
        self.erp = erp
        self.statuses = statuses
        self.confirmations = confirmations

    async def apply(self, matched: MatchedOrder, policy: TransitionPolicy) -> OrderOutcome:
        order = matched.order
        label = str(matched.ref)
        plan = policy.plan(order, self.statuses)

        outcome = OrderOutcome(order_number=label, state=OrderState.LINES_ACCUMULATED, kind=order.kind)
        try:
            order.status = plan.status
            await self.erp.push_order_update(order)

            if plan.document is not None:
                outcome.document = self.confirmations.write(plan.document, confirmation_filename(order))
        except (ERPError, OSError) as e:
            logger.error(f"Unable to update {order.kind.value.lower()} {order.number}: {e}")
            outcome.state = OrderState.FAILED
            outcome.error = e
            record_order_outcome(outcome.state.value)
            return outcome

        outcome.state = plan.state
        outcome.status = plan.status
        if plan.state == OrderState.SKIPPED:
            logger.info(f"{label}: nothing moved, acknowledged as {plan.status}")
        else:
            logger.info(f"{label}: {len(order.moved_lines())} lines moved, updated to {plan.status}")
        record_order_outcome(outcome.state.value)
        return outcome
