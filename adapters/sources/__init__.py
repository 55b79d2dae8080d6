"""Metric source adapters."""

from adapters.sources.actuator import ActuatorMetricSource, extract_measurement

__all__ = ["ActuatorMetricSource", "extract_measurement"]
