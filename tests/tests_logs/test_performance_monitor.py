"""
Comprehensive test suite for logs.performance_monitor module.

Tests cover:
- PerformanceMonitor: record_metric, monitor_process context manager
- ProcessMonitor: start, end, record_metric, system metrics collection
- get_metrics / get_performance_summary
- Edge cases and error conditions
"""

from unittest.mock import MagicMock, patch

import psutil
import pytest

from logs.performance_monitor import (
    MetricRecord,
    PerformanceMonitor,
    PerformanceMonitorError,
    ProcessMonitor,
)

# ============================================================================
# UNIT TESTS - PerformanceMonitor
# ============================================================================


@pytest.mark.unit
def test_performance_monitor_initialization():
    monitor = PerformanceMonitor()

    assert monitor.metrics == []
    assert monitor.get_performance_summary() == {}


@pytest.mark.unit
def test_record_metric_success():
    monitor = PerformanceMonitor()

    record = monitor.record_metric('population', 'rows_output', 2, 'rows')

    assert isinstance(record, MetricRecord)
    assert record.metric_value == 2.0
    assert record.metric_unit == 'rows'
    assert monitor.get_metrics() == [record]


@pytest.mark.unit
def test_record_metric_minimal_params():
    monitor = PerformanceMonitor()

    record = monitor.record_metric('kennels', 'execution_time', 0.25)

    assert record.metric_unit is None
    assert record.recorded_at is not None


@pytest.mark.edge_case
@pytest.mark.parametrize('value', ['fast', None, True])
def test_record_metric_rejects_non_numeric(value):
    with pytest.raises(PerformanceMonitorError, match="must be numeric"):
        PerformanceMonitor().record_metric('kennels', 'rows_output', value)


@pytest.mark.unit
def test_get_metrics_filters_by_process():
    monitor = PerformanceMonitor()
    monitor.record_metric('population', 'rows_output', 2)
    monitor.record_metric('kennels', 'rows_output', 1)

    assert [m.process_name for m in monitor.get_metrics('kennels')] == ['kennels']
    assert len(monitor.get_metrics()) == 2


@pytest.mark.unit
def test_performance_summary_keeps_latest_value():
    monitor = PerformanceMonitor()
    monitor.record_metric('population', 'rows_output', 2)
    monitor.record_metric('population', 'rows_output', 5)
    monitor.record_metric('kennels', 'rows_output', 1)

    assert monitor.get_performance_summary() == {
        'population': {'rows_output': 5.0},
        'kennels': {'rows_output': 1.0},
    }


# ============================================================================
# INTEGRATION TESTS - monitor_process
# ============================================================================


@pytest.mark.integration
def test_monitor_process_context_manager():
    monitor = PerformanceMonitor()

    with monitor.monitor_process('population') as pm:
        assert isinstance(pm, ProcessMonitor)
        pm.record_metric('rows_output', 2, 'rows')

    summary = monitor.get_performance_summary()['population']
    assert summary['rows_output'] == 2.0
    assert summary['execution_time'] >= 0
    assert 'cpu_time' in summary
    assert 'memory_delta' in summary


@pytest.mark.integration
def test_monitor_process_ensures_end_called_on_exception():
    monitor = PerformanceMonitor()

    with pytest.raises(RuntimeError):
        with monitor.monitor_process('kennels'):
            raise RuntimeError('boom')

    assert 'execution_time' in monitor.get_performance_summary()['kennels']


# ============================================================================
# UNIT TESTS - ProcessMonitor
# ============================================================================


@pytest.mark.unit
def test_process_monitor_initialization():
    monitor = PerformanceMonitor()
    pm = ProcessMonitor(monitor, 'staff')

    assert pm.performance_monitor is monitor
    assert pm.process_name == 'staff'
    assert pm.start_time is None


@pytest.mark.edge_case
def test_process_monitor_end_without_start_records_nothing():
    monitor = PerformanceMonitor()

    ProcessMonitor(monitor, 'staff').end()

    assert monitor.metrics == []


@pytest.mark.edge_case
@patch('logs.performance_monitor.psutil.Process')
def test_process_monitor_tolerates_access_denied(mock_process):
    mock_process.side_effect = psutil.AccessDenied()
    monitor = PerformanceMonitor()
    pm = ProcessMonitor(monitor, 'staff')

    pm.start()
    pm.end()

    assert list(monitor.get_performance_summary()['staff']) == ['execution_time']


@pytest.mark.unit
@patch('logs.performance_monitor.psutil.Process')
def test_process_monitor_computes_cpu_and_memory_deltas(mock_process):
    process = MagicMock()
    process.cpu_times.side_effect = [
        MagicMock(user=1.0, system=0.5),
        MagicMock(user=1.5, system=0.75),
    ]
    process.memory_info.side_effect = [
        MagicMock(rss=10 * 1024 * 1024),
        MagicMock(rss=12 * 1024 * 1024),
    ]
    mock_process.return_value = process
    monitor = PerformanceMonitor()
    pm = ProcessMonitor(monitor, 'staff')

    pm.start()
    pm.end()

    summary = monitor.get_performance_summary()['staff']
    assert summary['cpu_time'] == pytest.approx(0.75)
    assert summary['memory_delta'] == pytest.approx(2.0)
