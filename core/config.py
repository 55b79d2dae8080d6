"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Secure defaults (no API keys in code)
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from core.services.threshold import ThresholdConfig

# Load environment variables from .env file
load_dotenv()

DEFAULT_ACTUATOR_URL = "http://localhost:8080/actuator/metrics/system.cpu.usage"


class MonitoringConfig(BaseModel):
    """Schedule of the two periodic tasks."""

    series_name: str = Field(default="cpuMetrics", min_length=1, description="Series name")
    collection_interval_seconds: float = Field(
        default=6.0, gt=0.0, description="Interval between metric collections"
    )
    evaluation_interval_seconds: float = Field(
        default=60.0, gt=0.0, description="Interval between alert evaluations"
    )


class SourceConfig(BaseModel):
    """Metric source endpoint."""

    endpoint_url: str = Field(default=DEFAULT_ACTUATOR_URL, description="Metrics endpoint URL")
    timeout_seconds: float = Field(default=5.0, gt=0.0, description="Fetch timeout")


class StorageConfig(BaseModel):
    """Time-series store backend."""

    backend: Literal["memory", "sqlite"] = Field(default="memory", description="Store backend")
    sqlite_path: str = Field(default="./metrics.db", description="SQLite database file")


class NotifierConfig(BaseModel):
    """Alert delivery channel."""

    channel: Literal["console", "webhook", "sendgrid"] = Field(
        default="console", description="Alert channel"
    )
    webhook_url: str | None = Field(default=None, description="Incoming webhook URL")
    sendgrid_api_key: str | None = Field(default=None, description="SendGrid API key")
    email_from: str | None = Field(default=None, description="Alert sender address")
    email_to: str | None = Field(default=None, description="Alert recipient address")
    timeout_seconds: float = Field(default=10.0, gt=0.0, description="Delivery timeout")

    @model_validator(mode="after")
    def channel_requirements(self) -> "NotifierConfig":
        """Ensure the selected channel has what it needs to deliver."""
        if self.channel == "webhook" and not self.webhook_url:
            raise ValueError("webhook channel requires ALERT_WEBHOOK_URL")
        if self.channel == "sendgrid":
            missing = [
                name
                for name, value in (
                    ("SENDGRID_API_KEY", self.sendgrid_api_key),
                    ("ALERT_EMAIL_FROM", self.email_from),
                    ("ALERT_EMAIL_TO", self.email_to),
                )
                if not value
            ]
            if missing:
                raise ValueError(f"sendgrid channel requires {', '.join(missing)}")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    threshold: ThresholdConfig = Field(default_factory=ThresholdConfig)
    source: SourceConfig = Field(default_factory=SourceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    monitoring_config = MonitoringConfig(
        series_name=os.getenv("SERIES_NAME", "cpuMetrics"),
        collection_interval_seconds=float(os.getenv("COLLECTION_INTERVAL_SECONDS", "6.0")),
        evaluation_interval_seconds=float(os.getenv("EVALUATION_INTERVAL_SECONDS", "60.0")),
    )

    threshold_config = ThresholdConfig(
        window_seconds=float(os.getenv("THRESHOLD_WINDOW_SECONDS", "21600")),
        multiplier=float(os.getenv("THRESHOLD_MULTIPLIER", "1.2")),
        static_floor=float(os.getenv("ALERT_STATIC_FLOOR", "90.0")),
    )

    source_config = SourceConfig(
        endpoint_url=os.getenv("METRIC_SOURCE_URL", DEFAULT_ACTUATOR_URL),
        timeout_seconds=float(os.getenv("METRIC_SOURCE_TIMEOUT_SECONDS", "5.0")),
    )

    storage_config = StorageConfig(
        backend=cast(
            Literal["memory", "sqlite"], os.getenv("STORAGE_BACKEND", "memory").strip().lower()
        ),
        sqlite_path=os.getenv("SQLITE_PATH", "./metrics.db"),
    )

    notifier_config = NotifierConfig(
        channel=cast(
            Literal["console", "webhook", "sendgrid"],
            os.getenv("NOTIFIER_CHANNEL", "console").strip().lower(),
        ),
        webhook_url=os.getenv("ALERT_WEBHOOK_URL") or None,
        sendgrid_api_key=os.getenv("SENDGRID_API_KEY") or None,
        email_from=os.getenv("ALERT_EMAIL_FROM") or None,
        email_to=os.getenv("ALERT_EMAIL_TO") or None,
        timeout_seconds=float(os.getenv("NOTIFIER_TIMEOUT_SECONDS", "10.0")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        monitoring=monitoring_config,
        threshold=threshold_config,
        source=source_config,
        storage=storage_config,
        notifier=notifier_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()
