"""
Error taxonomy for the monitoring loop.

Leaf I/O (metric sources, notifiers) hands these back inside a Result;
stores raise them. Scheduled cycles catch all of them at their boundary.
"""


class MonitoringError(Exception):
    """Base class for every expected failure in the monitoring core."""


class MetricSourceError(MonitoringError):
    """The metric source could not produce a value."""


class SourceUnavailable(MetricSourceError):
    """Transport failure, timeout, or non-success status from the endpoint."""


class MalformedResponse(MetricSourceError):
    """The endpoint answered, but not with a usable numeric value."""


class StoreError(MonitoringError):
    """Base class for time-series store failures."""


class SeriesNotFound(StoreError):
    def __init__(self, series: str) -> None:
        super().__init__(f"Series not found: {series}")
        self.series = series


class SampleNotFound(StoreError):
    def __init__(self, series: str) -> None:
        super().__init__(f"Series has no samples: {series}")
        self.series = series


class DuplicateTimestamp(StoreError):
    def __init__(self, series: str, timestamp: object) -> None:
        super().__init__(f"Series {series} already has a sample at {timestamp}")
        self.series = series
        self.timestamp = timestamp


class StoreUnavailable(StoreError):
    """The backing store could not be reached or failed mid-operation."""


class NotifierError(MonitoringError):
    """Base class for alert delivery failures."""


class DeliveryFailed(NotifierError):
    def __init__(self, reason: str, channel: str = "unknown") -> None:
        super().__init__(f"Delivery via {channel} failed: {reason}")
        self.reason = reason
        self.channel = channel
