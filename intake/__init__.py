"""Intake jobs: push ERP data (items, deliveries, transfers) to the WMS."""
