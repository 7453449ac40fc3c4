"""ERP Connectors.

This package contains the abstract ERP interface and the Directo
implementation. The reconciliation engine and the intake jobs depend only on
ERPConnector and the three ERPError subclasses; nothing Directo-specific
leaks through.
"""

from connectors.erp_base import (
    ERPConnector,
    ERPConfig,
    ERPConnectionStatus,
    ERPError,
    TransportError,
    CommitError,
    UnknownOrder,
    InvalidOrderRecord,
)

__all__ = [
    "ERPConnector",
    "ERPConfig",
    "ERPConnectionStatus",
    "ERPError",
    "TransportError",
    "CommitError",
    "UnknownOrder",
    "InvalidOrderRecord",
]
