"""
Dynamic threshold calculation over a trailing window.

The threshold is a moving-average bound, not a statistical anomaly model:
    threshold = mean(values in [now - window, now]) * multiplier

Contract:
- Recomputed from scratch on every call (no state retained between calls)
- Deterministic for the same stored data
- Tracks the recent average monotonically
- An empty window yields 0.0 and is flagged degenerate; callers must not alert on it
"""

from datetime import datetime, timedelta

import structlog
from pydantic import BaseModel, Field

from core.domain.models import Threshold
from core.services.time_series_store import TimeSeriesStore

logger = structlog.get_logger(__name__)


class ThresholdConfig(BaseModel):
    """Configuration for the dynamic threshold."""

    window_seconds: float = Field(
        default=6 * 60 * 60, gt=0.0, description="Length of the trailing averaging window"
    )
    multiplier: float = Field(
        default=1.2, gt=0.0, description="Factor applied to the window average"
    )
    static_floor: float = Field(
        default=90.0,
        description="Thresholds at or below this value are not considered alert-worthy",
    )

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)


class ThresholdCalculator:
    """Derives a Threshold from the samples a store holds for a trailing window."""

    def __init__(self, store: TimeSeriesStore, multiplier: float = 1.2) -> None:
        if multiplier <= 0:
            raise ValueError("multiplier must be positive")
        self.store = store
        self.multiplier = multiplier
        self.logger = logger.bind(component="threshold_calculator")

    async def compute(self, series: str, now: datetime, window: timedelta) -> Threshold:
        """
        Compute the threshold for ``series`` over ``[now - window, now]``.

        Raises:
            SeriesNotFound: propagated from the store.
        """
        window_start = now - window

        count = 0
        total = 0.0
        async for sample in self.store.query_range(series, window_start, now):
            total += sample.value
            count += 1

        average = total / count if count > 0 else 0.0
        threshold = Threshold(
            value=average * self.multiplier,
            average=average,
            sample_count=count,
            multiplier=self.multiplier,
            window_start=window_start,
            window_end=now,
        )

        self.logger.debug(
            "threshold_computed",
            series=series,
            sample_count=count,
            average=round(average, 6),
            threshold=round(threshold.value, 6),
            window_seconds=window.total_seconds(),
        )
        return threshold
