"""Directo ERP connector."""

from connectors.directo.directo_connector import DirectoConnector
from connectors.directo.directo_client import DirectoApiClient, DirectoApiConfig, RetryConfig

__all__ = [
    "DirectoConnector",
    "DirectoApiClient",
    "DirectoApiConfig",
    "RetryConfig",
]
