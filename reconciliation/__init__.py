"""Reconciliation of WMS return files against ERP orders.

Kept import-free: wms.documents depends on reconciliation.order_numbers, and
the engine depends on wms.documents. Import from the submodules directly.
"""
