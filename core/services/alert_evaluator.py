"""
Alert evaluation: compare the latest sample against the dynamic threshold.

One cycle: idle -> evaluating -> (notifying | idle)
1. Read the latest sample
2. Compute the threshold over the trailing window
3. Alert when latest > threshold AND threshold > static floor
4. Hand the alert to the notifier (exactly once per breaching cycle)

Repeated breaches across consecutive cycles re-notify every cycle; there is
no cooldown or suppression window.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

import structlog
from pydantic import BaseModel, Field

from core.domain.errors import DeliveryFailed, SampleNotFound, SeriesNotFound, StoreError
from core.domain.models import Alert, Delivered, MetricSample, Threshold
from core.services.metrics_collector import Result
from core.services.threshold import ThresholdCalculator, ThresholdConfig
from core.services.time_series_store import TimeSeriesStore

logger = structlog.get_logger(__name__)


class Notifier(Protocol):
    """
    Protocol for alert delivery channels (console, chat webhook, email).

    Channel failures come back as DeliveryFailed inside the Result; they are
    logged by the caller and never retried here.
    """

    channel: str

    async def send(self, alert: Alert) -> Result[Delivered, DeliveryFailed]: ...


class AlertEvaluatorConfig(BaseModel):
    """Evaluation schedule and alerting bounds."""

    series_name: str = Field(default="cpuMetrics", min_length=1)
    evaluation_interval_seconds: float = Field(
        default=60.0, gt=0.0, description="Interval between evaluations"
    )
    threshold: ThresholdConfig = Field(default_factory=ThresholdConfig)
    notify_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Upper bound on a single notifier call"
    )


class AlertEvaluator:
    """
    Decides, once per cycle, whether the latest sample breaches the threshold.

    Skips silently (debug log only) when the series does not exist yet, holds
    no samples, or the trailing window is empty.
    """

    def __init__(
        self,
        config: AlertEvaluatorConfig,
        store: TimeSeriesStore,
        notifier: Notifier,
        calculator: ThresholdCalculator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.notifier = notifier
        self.calculator = calculator or ThresholdCalculator(
            store, multiplier=config.threshold.multiplier
        )
        self._clock = clock or (lambda: datetime.now(UTC))
        self.logger = logger.bind(component="alert_evaluator", series=config.series_name)

    def should_alert(self, latest: MetricSample, threshold: Threshold) -> bool:
        """Breach rule: above the dynamic threshold, and the threshold above the floor."""
        if threshold.is_degenerate:
            return False
        above_floor = threshold.value > self.config.threshold.static_floor
        return latest.value > threshold.value and above_floor

    async def run_cycle(self) -> Alert | None:
        """
        Run one evaluation cycle.

        Returns the alert handed to the notifier, or None when nothing fired.
        """
        series = self.config.series_name
        now = self._clock()

        try:
            latest = await self.store.latest(series)
            threshold = await self.calculator.compute(series, now, self.config.threshold.window)
        except (SeriesNotFound, SampleNotFound) as e:
            self.logger.debug("evaluation_skipped_no_data", reason=str(e))
            return None
        except StoreError as e:
            self.logger.warning(
                "evaluation_store_error",
                operation="evaluate",
                timestamp=now.isoformat(),
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        if threshold.is_degenerate:
            self.logger.debug("evaluation_skipped_empty_window", timestamp=now.isoformat())
            return None

        if not self.should_alert(latest, threshold):
            self.logger.info(
                "evaluation_within_threshold",
                current_value=latest.value,
                threshold=threshold.value,
                static_floor=self.config.threshold.static_floor,
                sample_count=threshold.sample_count,
            )
            return None

        alert = Alert(
            metric_name=series,
            threshold_value=threshold.value,
            current_value=latest.value,
            timestamp=now,
        )
        await self._dispatch(alert)
        return alert

    async def _dispatch(self, alert: Alert) -> None:
        channel = getattr(self.notifier, "channel", type(self.notifier).__name__)
        try:
            result = await asyncio.wait_for(
                self.notifier.send(alert), timeout=self.config.notify_timeout_seconds
            )
        except TimeoutError:
            result = Result.err(
                DeliveryFailed(
                    f"timed out after {self.config.notify_timeout_seconds}s", channel=channel
                )
            )

        if result.is_err():
            error = result.unwrap_err()
            self.logger.error(
                "alert_delivery_failed",
                operation="notify",
                channel=channel,
                timestamp=alert.timestamp.isoformat(),
                reason=error.reason,
            )
            return

        self.logger.info(
            "alert_dispatched",
            channel=channel,
            current_value=alert.current_value,
            threshold=alert.threshold_value,
            timestamp=alert.timestamp.isoformat(),
        )
