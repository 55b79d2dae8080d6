"""
Core services for the application.

This package contains the monitoring loop: metric collection, threshold
calculation, alert evaluation and the periodic scheduler that drives them.
"""

from .alert_evaluator import AlertEvaluator, AlertEvaluatorConfig, Notifier
from .metrics_collector import (
    MetricsCollector,
    MetricsCollectorConfig,
    MetricSource,
    Result,
)
from .scheduler import PeriodicTask, Scheduler
from .threshold import ThresholdCalculator, ThresholdConfig
from .time_series_store import TimeSeriesStore

__all__ = [
    "AlertEvaluator",
    "AlertEvaluatorConfig",
    "MetricSource",
    "MetricsCollector",
    "MetricsCollectorConfig",
    "Notifier",
    "PeriodicTask",
    "Result",
    "Scheduler",
    "ThresholdCalculator",
    "ThresholdConfig",
    "TimeSeriesStore",
]
