"""Core module - ERP-neutral models, configuration, storage and observability.

Nothing in here knows about Directo or Tcplus formats. ERP-specific logic
belongs in /connectors/, WMS document formats in /wms/.
"""

__version__ = "0.1.0"
