"""Abstract ERP Connector Interface.

This module defines the interface the reconciliation engine and the intake
jobs use to talk to the ERP. It is intentionally ERP-agnostic - no Directo
specifics here.

Connectors implement this interface to:
1. Fetch deliveries and transfers, by number or by warehouse/status
2. Push a full order update (lines + status) after return processing
3. Push a status-only update during intake
4. Fetch the item catalog, optionally only items changed since a timestamp

Key Design Principles:
- All methods return NORMALIZED objects (Order, Item) - not ERP payloads
- Errors are raised as one of four ERPError subclasses, and callers decide
  retry behavior from `is_transient` alone
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from core.models import Item, Order, OrderKind


# =============================================================================
# Enums
# =============================================================================

class ERPConnectionStatus(str, Enum):
    """Connection status to ERP system."""
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"
    FAILED = "FAILED"


# =============================================================================
# Errors
# =============================================================================

class ERPError(Exception):
    """Base class for errors surfaced by an ERP connector."""

    is_transient: bool = False

    def __init__(self, message: str, order_number: Optional[str] = None):
        super().__init__(message)
        self.order_number = order_number


class TransportError(ERPError):
    """Network or HTTP-level failure. The same call may succeed next tick."""
    is_transient = True

    def __init__(self, message: str = "Error in ERP API request", status_code: int = 0,
                 response_body: str = "", order_number: Optional[str] = None):
        super().__init__(message, order_number)
        self.status_code = status_code
        self.response_body = response_body


class CommitError(ERPError):
    """The ERP rejected an update, e.g. because the document is already finalized."""

    def __init__(self, message: str = "ERP rejected the update", result_code: str = "",
                 order_number: Optional[str] = None):
        super().__init__(message, order_number)
        self.result_code = result_code


class UnknownOrder(ERPError):
    """The ERP has no order with the requested number."""

    def __init__(self, kind: OrderKind, number: str):
        super().__init__(f"Unknown {kind.value.lower()}: {number}", number)
        self.kind = kind
        self.number = number


class InvalidOrderRecord(ERPError):
    """The ERP returned an order record that cannot be mapped to an Order."""

    def __init__(self, kind: OrderKind, number: str, reason: str):
        super().__init__(f"Invalid {kind.value.lower()} record {number}: {reason}", number)
        self.kind = kind
        self.number = number


# =============================================================================
# Connector Configuration
# =============================================================================

@dataclass
class ERPConfig:
    """Configuration shared by ERP connectors."""
    erp_type: str
    base_url: str
    organization: str
    timeout_seconds: int = 30
    extra: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Abstract Connector Interface
# =============================================================================

class ERPConnector(ABC):
    """Abstract base class for ERP connectors.

    Implementations:
    - connectors/directo/directo_connector.py
    - the in-memory fake used by the test suite
    """

    def __init__(self, config: ERPConfig):
        self.config = config
        self._connection_status = ERPConnectionStatus.DISCONNECTED

    # =========================================================================
    # Connection Management
    # =========================================================================

    @abstractmethod
    async def connect(self) -> bool:
        """Open the HTTP session. Returns True on success."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        pass

    @property
    def connection_status(self) -> ERPConnectionStatus:
        return self._connection_status

    async def __aenter__(self) -> "ERPConnector":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    # =========================================================================
    # Orders
    # =========================================================================

    @abstractmethod
    async def fetch_order(self, kind: OrderKind, number: str) -> Order:
        """Fetch one delivery or transfer with all its lines.

        Raises:
            UnknownOrder: The ERP has no such order
            InvalidOrderRecord: The record has unparseable fields
            TransportError: Connectivity or HTTP failure
        """
        pass

    @abstractmethod
    async def list_orders(
        self,
        kind: OrderKind,
        warehouse: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[Order]:
        """List orders of one kind filtered by warehouse and/or status.

        For deliveries the warehouse is the shipping stock; for transfers it
        is the receiving stock.
        """
        pass

    @abstractmethod
    async def push_order_update(self, order: Order) -> None:
        """Write the full order (header, lines, status) back to the ERP.

        Raises:
            CommitError: The ERP refused the change
            TransportError: Connectivity or HTTP failure
        """
        pass

    @abstractmethod
    async def push_status_only(self, kind: OrderKind, number: str, status: str) -> None:
        """Change only the status of an order; line data is left alone."""
        pass

    # =========================================================================
    # Items
    # =========================================================================

    @abstractmethod
    async def fetch_items_since(self, timestamp: Optional[datetime] = None) -> List[Item]:
        """Fetch catalog items changed since `timestamp`, or all items when None."""
        pass
