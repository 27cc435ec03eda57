"""
================================================================
Performance monitoring for report runs.
================================================================

Tracks execution time and resource usage of each business question so
slow questions on large snapshots stand out. Metrics are kept in memory
for the lifetime of the monitor and echoed to the application log.

Classes:
    PerformanceMonitor: Stores metrics and opens per-process monitors
    ProcessMonitor: Times one process and samples CPU/memory via psutil
    MetricRecord: One recorded metric

Example:
    >>> from logs.performance_monitor import PerformanceMonitor
    >>>
    >>> monitor = PerformanceMonitor()
    >>> with monitor.monitor_process('population') as pm:
    ...     table = current_population_by_type(dataset)
    ...     pm.record_metric('rows_output', len(table), 'rows')
    >>>
    >>> monitor.get_performance_summary()['population']['execution_time']
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import psutil

from core.logger import get_logger

logger = get_logger(__name__)


class PerformanceMonitorError(Exception):
    """Exception raised for invalid performance metrics."""
    pass


@dataclass(frozen=True)
class MetricRecord:
    """A single recorded metric."""

    process_name: str
    metric_name: str
    metric_value: float
    metric_unit: Optional[str] = None
    recorded_at: datetime = field(default_factory=datetime.now)


class PerformanceMonitor:
    """
    In-memory performance metric store.

    Attributes:
        metrics: Recorded metrics in recording order
    """

    def __init__(self):
        self.metrics: List[MetricRecord] = []

    def record_metric(
        self,
        process_name: str,
        metric_name: str,
        metric_value: float,
        metric_unit: str = None
    ) -> MetricRecord:
        """
        Record a performance metric.

        Raises:
            PerformanceMonitorError: If the value is not numeric
        """
        if isinstance(metric_value, bool) or not isinstance(metric_value, (int, float)):
            raise PerformanceMonitorError(
                f"Metric '{metric_name}' must be numeric, got {metric_value!r}"
            )

        record = MetricRecord(
            process_name=process_name,
            metric_name=metric_name,
            metric_value=float(metric_value),
            metric_unit=metric_unit
        )
        self.metrics.append(record)
        logger.debug(f"Recorded metric '{metric_name}' for {process_name}: {metric_value} {metric_unit or ''}")
        return record

    @contextmanager
    def monitor_process(self, process_name: str):
        """
        Context manager timing a process.

        Yields:
            ProcessMonitor for recording custom metrics
        """
        monitor = ProcessMonitor(self, process_name)
        monitor.start()
        try:
            yield monitor
        finally:
            monitor.end()

    def get_metrics(self, process_name: str = None) -> List[MetricRecord]:
        """Recorded metrics, optionally for one process."""
        if process_name is None:
            return list(self.metrics)
        return [m for m in self.metrics if m.process_name == process_name]

    def get_performance_summary(self) -> Dict[str, Dict[str, Any]]:
        """
        Latest value of every metric, grouped by process.

        Returns:
            Dict of process name to {metric name: value}
        """
        summary: Dict[str, Dict[str, Any]] = {}
        for metric in self.metrics:
            summary.setdefault(metric.process_name, {})[metric.metric_name] = metric.metric_value
        return summary


class ProcessMonitor:
    """
    Individual process monitor used by PerformanceMonitor.monitor_process.

    Records execution_time (seconds), cpu_time (seconds) and
    memory_delta (MB) when the process ends.
    """

    def __init__(self, performance_monitor: PerformanceMonitor, process_name: str):
        self.performance_monitor = performance_monitor
        self.process_name = process_name
        self.start_time = None
        self.start_cpu_times = None
        self.start_memory = None

    def start(self):
        """Start monitoring."""
        self.start_time = time.perf_counter()

        try:
            process = psutil.Process()
            self.start_cpu_times = process.cpu_times()
            self.start_memory = process.memory_info()
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            logger.warning("Could not access process metrics")

    def end(self):
        """End monitoring and record final metrics."""
        if self.start_time is None:
            return

        execution_time = time.perf_counter() - self.start_time
        self.record_metric('execution_time', execution_time, 'seconds')

        try:
            process = psutil.Process()
            if self.start_cpu_times:
                end_cpu_times = process.cpu_times()
                cpu_time = (
                    (end_cpu_times.user - self.start_cpu_times.user) +
                    (end_cpu_times.system - self.start_cpu_times.system)
                )
                self.record_metric('cpu_time', cpu_time, 'seconds')

            if self.start_memory:
                memory_delta = process.memory_info().rss - self.start_memory.rss
                self.record_metric('memory_delta', memory_delta / 1024 / 1024, 'MB')
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            logger.warning("Could not collect final process metrics")

        logger.info(f"⏱️  {self.process_name}: {execution_time:.3f}s")

    def record_metric(self, metric_name: str, metric_value: float, metric_unit: str = None):
        """Record a custom metric for this process."""
        return self.performance_monitor.record_metric(
            process_name=self.process_name,
            metric_name=metric_name,
            metric_value=metric_value,
            metric_unit=metric_unit
        )
