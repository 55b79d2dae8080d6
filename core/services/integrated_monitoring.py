"""
Integration service that wires the monitoring loop together.

Pipeline:
1. Collector task: fetch the metric, append it to the series
2. Evaluator task: compute the dynamic threshold, notify on breach

The store handle is built once and passed to both tasks; they share nothing
else. Run with: python -m core.services.integrated_monitoring
"""

import asyncio

import structlog

from adapters.notifiers import ConsoleNotifier, SendGridNotifier, WebhookNotifier
from adapters.sources import ActuatorMetricSource
from adapters.storage import InMemoryTimeSeriesStore, SQLiteTimeSeriesStore
from core.config import AppConfig, get_config
from core.logs import configure_logging
from core.services.alert_evaluator import AlertEvaluator, AlertEvaluatorConfig, Notifier
from core.services.metrics_collector import MetricsCollector, MetricsCollectorConfig, MetricSource
from core.services.scheduler import Scheduler
from core.services.threshold import ThresholdCalculator
from core.services.time_series_store import TimeSeriesStore

logger = structlog.get_logger()


def build_store(config: AppConfig) -> TimeSeriesStore:
    if config.storage.backend == "sqlite":
        return SQLiteTimeSeriesStore(config.storage.sqlite_path)
    return InMemoryTimeSeriesStore()


def build_notifier(config: AppConfig) -> Notifier:
    settings = config.notifier
    if settings.channel == "webhook":
        if not settings.webhook_url:
            raise ValueError("webhook channel requires ALERT_WEBHOOK_URL")
        return WebhookNotifier(settings.webhook_url, timeout_seconds=settings.timeout_seconds)
    if settings.channel == "sendgrid":
        if not (settings.sendgrid_api_key and settings.email_from and settings.email_to):
            raise ValueError(
                "sendgrid channel requires SENDGRID_API_KEY, ALERT_EMAIL_FROM and ALERT_EMAIL_TO"
            )
        return SendGridNotifier(
            api_key=settings.sendgrid_api_key,
            from_email=settings.email_from,
            to_email=settings.email_to,
            timeout_seconds=settings.timeout_seconds,
        )
    return ConsoleNotifier()


class IntegratedMonitoringService:
    """
    Owns the collector, the evaluator and the scheduler that drives them.

    Components can be injected for tests; anything omitted is built from config.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        store: TimeSeriesStore | None = None,
        source: MetricSource | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.config = config or get_config()
        self.logger = logger.bind(component="integrated_monitoring")

        self.store = store or build_store(self.config)
        self.source = source or ActuatorMetricSource(
            endpoint_url=self.config.source.endpoint_url,
            timeout_seconds=self.config.source.timeout_seconds,
        )
        self.notifier = notifier or build_notifier(self.config)

        self._init_collector()
        self._init_evaluator()
        self._init_scheduler()

    def _init_collector(self) -> None:
        collector_config = MetricsCollectorConfig(
            series_name=self.config.monitoring.series_name,
            collection_interval_seconds=self.config.monitoring.collection_interval_seconds,
            timeout_seconds=self.config.source.timeout_seconds,
        )
        self.collector = MetricsCollector(collector_config, self.source, self.store)
        self.logger.info("metrics_collection_initialized")

    def _init_evaluator(self) -> None:
        threshold_config = self.config.threshold
        evaluator_config = AlertEvaluatorConfig(
            series_name=self.config.monitoring.series_name,
            evaluation_interval_seconds=self.config.monitoring.evaluation_interval_seconds,
            threshold=threshold_config,
            notify_timeout_seconds=self.config.notifier.timeout_seconds,
        )
        calculator = ThresholdCalculator(self.store, multiplier=threshold_config.multiplier)
        self.evaluator = AlertEvaluator(evaluator_config, self.store, self.notifier, calculator)
        self.logger.info("alert_evaluation_initialized")

    def _init_scheduler(self) -> None:
        monitoring = self.config.monitoring
        if monitoring.evaluation_interval_seconds < monitoring.collection_interval_seconds:
            # Not enforced; averages just get thin
            self.logger.warning(
                "evaluation_faster_than_collection",
                collection_interval_seconds=monitoring.collection_interval_seconds,
                evaluation_interval_seconds=monitoring.evaluation_interval_seconds,
            )

        self.scheduler = Scheduler()
        self.scheduler.every(
            "collector", monitoring.collection_interval_seconds, self.collector.run_cycle
        )
        self.scheduler.every(
            "alert_evaluator", monitoring.evaluation_interval_seconds, self.evaluator.run_cycle
        )

    async def run(self) -> None:
        """Run both periodic tasks until cancelled."""
        self.logger.info(
            "monitoring_service_starting",
            series=self.config.monitoring.series_name,
            storage=self.config.storage.backend,
            notifier=self.config.notifier.channel,
        )
        try:
            async with self.scheduler.running():
                await asyncio.Event().wait()
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """Release HTTP clients owned by the source and the notifier."""
        for component in (self.source, self.notifier):
            close = getattr(component, "aclose", None)
            if close is not None:
                await close()
        self.logger.info("monitoring_service_stopped")


async def main() -> None:
    config = get_config()
    configure_logging(config.logging)
    service = IntegratedMonitoringService(config)
    await service.run()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
