"""
Metrics Module: Diagnostics, counters, histograms.

Usage:
    from trip_core.metrics import get_metrics

    metrics = get_metrics()
    metrics.increment('fixes_in')
    metrics.increment_drop('low_accuracy')
    metrics.record_histogram('implied_speed_kmh', 42.0)

Components take an optional collector; when none is given they share the
process-wide one returned by get_metrics().
"""

from .counters import MetricsCollector, CounterSnapshot

_global_metrics = None


def get_metrics() -> MetricsCollector:
    """
    Get the global metrics collector singleton.

    Returns:
        MetricsCollector instance
    """
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics


def reset_metrics():
    """Reset global metrics (for testing)."""
    global _global_metrics
    _global_metrics = MetricsCollector()


__all__ = ['MetricsCollector', 'CounterSnapshot', 'get_metrics', 'reset_metrics']
