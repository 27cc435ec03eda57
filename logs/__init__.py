"""
=============================================
Run monitoring for shelter analytics.
=============================================

Modules:
    performance_monitor: Per-question timing and resource metrics

Components:
    PerformanceMonitor: Record metrics and open per-process monitors
    ProcessMonitor: Time one process and sample CPU/memory usage

Example:
    >>> from logs.performance_monitor import PerformanceMonitor
    >>>
    >>> monitor = PerformanceMonitor()
    >>> with monitor.monitor_process('kennels') as pm:
    ...     pm.record_metric('rows_output', 1, 'rows')
"""

__version__ = "0.1.0"
__all__ = ['PerformanceMonitor', 'ProcessMonitor', 'PerformanceMonitorError', 'MetricRecord']

from logs.performance_monitor import (
    MetricRecord,
    PerformanceMonitor,
    PerformanceMonitorError,
    ProcessMonitor,
)
