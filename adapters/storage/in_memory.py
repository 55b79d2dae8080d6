"""In-memory time-series store."""

import asyncio
from bisect import bisect_left, bisect_right
from collections.abc import AsyncIterator
from datetime import datetime

import structlog

from core.domain.errors import DuplicateTimestamp, SampleNotFound, SeriesNotFound
from core.domain.models import MetricSample, as_utc

logger = structlog.get_logger(__name__)


class _Series:
    """Samples kept sorted by timestamp, with a parallel key list for bisecting."""

    def __init__(self) -> None:
        self.keys: list[datetime] = []
        self.samples: list[MetricSample] = []


class InMemoryTimeSeriesStore:
    """In-memory implementation of TimeSeriesStore.

    Suitable for testing and single-process deployments where persistence is
    not required. Appends are serialized by a lock; readers work on a slice
    taken at query time, so a concurrent append never disturbs an iteration.
    """

    def __init__(self) -> None:
        self._series: dict[str, _Series] = {}
        self._append_lock = asyncio.Lock()
        self.logger = logger.bind(component="in_memory_store")

    def _get(self, series: str) -> _Series:
        try:
            return self._series[series]
        except KeyError:
            raise SeriesNotFound(series) from None

    async def ensure_series(self, series: str) -> None:
        if series not in self._series:
            self._series[series] = _Series()
            self.logger.info("series_created", series=series)

    async def append(self, series: str, sample: MetricSample) -> None:
        async with self._append_lock:
            await self.ensure_series(series)
            data = self._series[series]

            index = bisect_left(data.keys, sample.timestamp)
            if index < len(data.keys) and data.keys[index] == sample.timestamp:
                raise DuplicateTimestamp(series, sample.timestamp.isoformat())

            data.keys.insert(index, sample.timestamp)
            data.samples.insert(index, sample)

    async def query_range(
        self, series: str, start: datetime, end: datetime
    ) -> AsyncIterator[MetricSample]:
        data = self._get(series)
        lo = bisect_left(data.keys, as_utc(start))
        hi = bisect_right(data.keys, as_utc(end))
        for sample in data.samples[lo:hi]:
            yield sample

    async def latest(self, series: str) -> MetricSample:
        data = self._get(series)
        if not data.samples:
            raise SampleNotFound(series)
        return data.samples[-1]
