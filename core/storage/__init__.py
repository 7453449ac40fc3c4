"""WMS exchange directory storage."""

from core.storage.exchange import ExchangeDirectory, StoredDocument, write_document

__all__ = ["ExchangeDirectory", "StoredDocument", "write_document"]
