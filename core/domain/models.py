"""
Domain models for dynamic threshold monitoring.

These models represent the core business concepts and are framework-agnostic.
They use Pydantic for validation but could be swapped to dataclasses if needed.
"""

from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class MetricSample(BaseModel):
    """Single timestamped reading. The timestamp is the key within a series."""

    model_config = ConfigDict(frozen=True)  # Immutable once written

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    value: float = Field(allow_inf_nan=False)

    @field_validator("timestamp")
    @classmethod
    def normalize_to_utc(cls, v: datetime) -> datetime:
        # Store keys must compare consistently
        return as_utc(v)


class Threshold(BaseModel):
    """Dynamic threshold derived from the trailing window. Never persisted."""

    model_config = ConfigDict(frozen=True)

    value: float
    average: float
    sample_count: int = Field(ge=0)
    multiplier: float = Field(gt=0.0)
    window_start: datetime
    window_end: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_degenerate(self) -> bool:
        """An empty window yields 0.0, which must never be alerted on."""
        return self.sample_count == 0

    @property
    def window(self) -> timedelta:
        return self.window_end - self.window_start


class Alert(BaseModel):
    """Breach of the dynamic threshold, consumed immediately by a notifier."""

    model_config = ConfigDict(frozen=True)

    metric_name: str
    threshold_value: float
    current_value: float
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def subject(self) -> str:
        return f"Metric Alert - {self.metric_name} above dynamic threshold"

    @property
    def message(self) -> str:
        return (
            f"{self.metric_name} is {self.current_value:.4g}, above the dynamic threshold "
            f"of {self.threshold_value:.4g} at {self.timestamp.isoformat()}"
        )


class Delivered(BaseModel):
    """Successful hand-off of an alert to an external channel."""

    model_config = ConfigDict(frozen=True)

    channel: str
    delivered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
