"""
Periodic metric collection: pull one value from a source, append it to a series.

Key patterns:
- Protocol-based dependency injection (source and store are passed in)
- Generic Result type for expected failures of leaf I/O
- Timeouts at the cycle boundary so a slow endpoint cannot stall the scheduler
- Every failure ends the cycle early; the next tick is the retry
"""

import asyncio
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Generic, Protocol, TypeVar

import structlog
from pydantic import BaseModel, Field

from core.domain.errors import MetricSourceError, SourceUnavailable, StoreError
from core.domain.models import MetricSample
from core.services.time_series_store import TimeSeriesStore

logger = structlog.get_logger(__name__)

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Why: Makes error paths visible in type system, forces handling decisions.
    When to use: When failure is expected business logic, not exceptional.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class MetricSource(Protocol):
    """
    Protocol defining how to fetch the current value of one metric.

    Why Protocol over ABC: Structural typing, easier mocking, less coupling.
    Contract: never substitute a sentinel value; failures come back as errors.
    """

    source_name: str

    async def fetch(self) -> Result[float, MetricSourceError]:
        """
        Fetch the current metric value.

        Returns:
            Result[float, MetricSourceError]: the value, or SourceUnavailable /
            MalformedResponse.
        """
        ...


class MetricsCollectorConfig(BaseModel):
    """
    Configuration with validation and smart defaults.
    """

    series_name: str = Field(default="cpuMetrics", min_length=1)
    collection_interval_seconds: float = Field(
        default=6.0,
        gt=0.0,
        description="Interval between metric collections in seconds.",
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Upper bound on a single fetch from the metric source.",
    )


class MetricsCollector:
    """
    Pulls from a MetricSource and appends to a TimeSeriesStore, once per cycle.

    Design principles:
    - Each cycle is independent (idle -> fetching -> appending -> idle)
    - Graceful degradation (a failed cycle is logged and skipped, never fatal)
    - Observable (structured logging with series, timestamp and operation)
    """

    def __init__(
        self,
        config: MetricsCollectorConfig,
        source: MetricSource,
        store: TimeSeriesStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.source = source
        self.store = store
        self._clock = clock or (lambda: datetime.now(UTC))
        self.logger = logger.bind(
            component="metrics_collector",
            series=config.series_name,
            source=getattr(source, "source_name", type(source).__name__),
        )

    async def _fetch(self) -> Result[float, MetricSourceError]:
        try:
            return await asyncio.wait_for(self.source.fetch(), timeout=self.config.timeout_seconds)
        except TimeoutError:
            return Result.err(
                SourceUnavailable(f"fetch timed out after {self.config.timeout_seconds}s")
            )

    async def run_cycle(self) -> MetricSample | None:
        """
        Run one collection cycle.

        Returns the appended sample, or None when the cycle was skipped.
        """
        start_time = time.perf_counter()
        timestamp = self._clock()

        result = await self._fetch()
        if result.is_err():
            error = result.unwrap_err()
            self.logger.warning(
                "metric_fetch_failed",
                operation="fetch",
                timestamp=timestamp.isoformat(),
                error_type=type(error).__name__,
                error=str(error),
            )
            return None

        sample = MetricSample(timestamp=timestamp, value=result.unwrap())

        try:
            await self.store.append(self.config.series_name, sample)
        except StoreError as e:
            self.logger.warning(
                "sample_append_failed",
                operation="append",
                timestamp=sample.timestamp.isoformat(),
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        self.logger.info(
            "sample_appended",
            timestamp=sample.timestamp.isoformat(),
            value=sample.value,
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return sample
