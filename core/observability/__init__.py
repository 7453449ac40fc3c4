"""
Observability Module for the ERP/WMS reconciler

Provides:
- Structured logging with correlation IDs (pass, return file, order)
- In-memory metrics (job runs, file dispositions, order outcomes, ERP calls)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_job_started,
    record_job_completed,
    record_job_failed,
    record_file_disposition,
    record_order_outcome,
    record_erp_call,
    record_processing_time,
)

from core.observability.logging import (
    configure_logging,
    get_logger,
    CorrelationContext,
    with_correlation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "record_job_started",
    "record_job_completed",
    "record_job_failed",
    "record_file_disposition",
    "record_order_outcome",
    "record_erp_call",
    "record_processing_time",
    # Logging
    "configure_logging",
    "get_logger",
    "CorrelationContext",
    "with_correlation",
]
