"""Port interface for time-series storage.

The collector and the evaluator depend only on this protocol; concrete
stores live in ``adapters.storage``.
"""

from collections.abc import AsyncIterator
from datetime import datetime
from typing import Protocol, runtime_checkable

from core.domain.models import MetricSample


@runtime_checkable
class TimeSeriesStore(Protocol):
    """Append-only, timestamp-keyed store of named series.

    Duplicate policy: appending a second sample at an instant that already
    exists in the series raises DuplicateTimestamp and leaves the series
    unchanged. Samples are never overwritten.
    """

    async def ensure_series(self, series: str) -> None:
        """Create the series if it does not exist yet. Idempotent."""
        ...

    async def append(self, series: str, sample: MetricSample) -> None:
        """Append a sample, creating the series on first use.

        Raises:
            DuplicateTimestamp: the series already holds this timestamp.
            StoreUnavailable: the backend failed.
        """
        ...

    def query_range(
        self, series: str, start: datetime, end: datetime
    ) -> AsyncIterator[MetricSample]:
        """Lazily yield samples with start <= timestamp <= end, ascending.

        Each call returns a fresh iterator, so the same bounds can be
        re-queried. SeriesNotFound is raised on first iteration.
        """
        ...

    async def latest(self, series: str) -> MetricSample:
        """Return the sample with the greatest timestamp.

        Raises:
            SeriesNotFound: the series was never created.
            SampleNotFound: the series exists but is empty.
        """
        ...
