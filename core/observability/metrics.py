"""
Metrics Collection for the ERP/WMS reconciler

Collects and exposes in-memory metrics for:
- Job runs (started, completed, failed) per scheduled job
- Return file dispositions (deleted, retained, untouched)
- Order outcomes (updated, skipped, failed)
- ERP calls (fetches, pushes, errors)
- Processing times (average, p95)

Nothing is persisted: counters live for the lifetime of the worker process.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, List, Optional, Any
import statistics


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class JobMetrics:
    """Metrics for scheduled job runs."""
    started: int = 0
    completed: int = 0
    failed: int = 0

    by_name: Dict[str, Dict[str, int]] = field(default_factory=lambda: defaultdict(lambda: {"started": 0, "completed": 0, "failed": 0}))


@dataclass
class ReturnFileMetrics:
    """Return file dispositions and order outcomes."""
    files: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    orders: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class ERPCallMetrics:
    """ERP round trips by operation."""
    calls: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    errors: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class TimingMetrics:
    """Processing time metrics."""
    samples: List[float] = field(default_factory=list)
    max_samples: int = 1000

    by_stage: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, duration_ms: float, stage: str = None):
        """Add a timing sample."""
        self.samples.append(duration_ms)
        if len(self.samples) > self.max_samples:
            self.samples = self.samples[-self.max_samples:]

        if stage:
            self.by_stage[stage].append(duration_ms)
            if len(self.by_stage[stage]) > self.max_samples:
                self.by_stage[stage] = self.by_stage[stage][-self.max_samples:]

    def get_average(self, stage: str = None) -> float:
        """Get average processing time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: str = None) -> float:
        """Get 95th percentile processing time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        if not samples:
            return 0.0
        sorted_samples = sorted(samples)
        idx = int(len(sorted_samples) * 0.95)
        return sorted_samples[min(idx, len(sorted_samples) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for the reconciler.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_job_started("returns")
        metrics.record_file_disposition("DELETED")
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self.jobs = JobMetrics()
        self.returns = ReturnFileMetrics()
        self.erp = ERPCallMetrics()
        self.timings = TimingMetrics()
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    # =========================================================================
    # Job Metrics
    # =========================================================================

    def record_job_started(self, job_name: str):
        with self._lock:
            self.jobs.started += 1
            self.jobs.by_name[job_name]["started"] += 1

    def record_job_completed(self, job_name: str, duration_ms: float = None):
        with self._lock:
            self.jobs.completed += 1
            self.jobs.by_name[job_name]["completed"] += 1

            if duration_ms:
                self.timings.add_sample(duration_ms, f"job.{job_name}")

    def record_job_failed(self, job_name: str):
        with self._lock:
            self.jobs.failed += 1
            self.jobs.by_name[job_name]["failed"] += 1

    # =========================================================================
    # Return File Metrics
    # =========================================================================

    def record_file_disposition(self, disposition: str):
        """Record what happened to a return file (DELETED, RETAINED, UNTOUCHED)."""
        with self._lock:
            self.returns.files[disposition] += 1

    def record_order_outcome(self, state: str):
        """Record the final state of an order within a pass."""
        with self._lock:
            self.returns.orders[state] += 1

    # =========================================================================
    # ERP Metrics
    # =========================================================================

    def record_erp_call(self, operation: str, error: str = None):
        with self._lock:
            self.erp.calls[operation] += 1
            if error:
                self.erp.errors[f"{operation}.{error}"] += 1

    # =========================================================================
    # Timing Metrics
    # =========================================================================

    def record_processing_time(self, stage: str, duration_ms: float):
        """Record a processing time sample."""
        with self._lock:
            self.timings.add_sample(duration_ms, stage)

    def get_timing_stats(self, stage: str = None) -> Dict[str, float]:
        """Get timing statistics for a stage."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(stage),
                "p95_ms": self.timings.get_p95(stage),
                "sample_count": len(self.timings.by_stage.get(stage, []) if stage else self.timings.samples),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "jobs": {
                    "started": self.jobs.started,
                    "completed": self.jobs.completed,
                    "failed": self.jobs.failed,
                    "by_name": {k: dict(v) for k, v in self.jobs.by_name.items()},
                },
                "returns": {
                    "files": dict(self.returns.files),
                    "orders": dict(self.returns.orders),
                },
                "erp": {
                    "calls": dict(self.erp.calls),
                    "errors": dict(self.erp.errors),
                },
                "timings": {
                    "overall": {
                        "average_ms": self.timings.get_average(),
                        "p95_ms": self.timings.get_p95(),
                    },
                    "by_stage": {
                        stage: {
                            "average_ms": self.timings.get_average(stage),
                            "p95_ms": self.timings.get_p95(stage),
                        }
                        for stage in self.timings.by_stage.keys()
                    },
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_job_started(job_name: str):
    get_metrics().record_job_started(job_name)


def record_job_completed(job_name: str, duration_ms: float = None):
    get_metrics().record_job_completed(job_name, duration_ms)


def record_job_failed(job_name: str):
    get_metrics().record_job_failed(job_name)


def record_file_disposition(disposition: str):
    get_metrics().record_file_disposition(disposition)


def record_order_outcome(state: str):
    get_metrics().record_order_outcome(state)


def record_erp_call(operation: str, error: str = None):
    get_metrics().record_erp_call(operation, error)


def record_processing_time(stage: str, duration_ms: float):
    get_metrics().record_processing_time(stage, duration_ms)
