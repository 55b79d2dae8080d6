"""
HTTP metric source for actuator-style endpoints.

Expected response shape (Spring Boot actuator, Micrometer style):

    {"name": "system.cpu.usage",
     "measurements": [{"statistic": "VALUE", "value": 0.27}], ...}

The first measurement's numeric ``value`` is the metric value. Anything else
is a MalformedResponse; transport problems are SourceUnavailable. No default
value is ever substituted.
"""

import math
from typing import Any

import httpx
import structlog

from core.config import DEFAULT_ACTUATOR_URL
from core.domain.errors import MalformedResponse, MetricSourceError, SourceUnavailable
from core.services.metrics_collector import Result

logger = structlog.get_logger(__name__)


def extract_measurement(payload: Any) -> float:
    """Pull ``measurements[0].value`` out of a decoded JSON payload."""
    if not isinstance(payload, dict):
        raise MalformedResponse("response body is not a JSON object")

    measurements = payload.get("measurements")
    if not isinstance(measurements, list) or not measurements:
        raise MalformedResponse("'measurements' is missing or empty")

    first = measurements[0]
    if not isinstance(first, dict) or "value" not in first:
        raise MalformedResponse("first measurement has no 'value' field")

    value = first["value"]
    # bool is an int subclass; JSON true/false is not a measurement
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise MalformedResponse(f"measurement value is not numeric: {value!r}")
    if not math.isfinite(value):
        raise MalformedResponse(f"measurement value is not finite: {value!r}")
    return float(value)


class ActuatorMetricSource:
    """
    Fetches one metric value with an HTTP GET.

    The httpx client is created lazily and owned by the source unless one is
    passed in, in which case the caller keeps ownership.
    """

    def __init__(
        self,
        endpoint_url: str = DEFAULT_ACTUATOR_URL,
        timeout_seconds: float = 5.0,
        client: httpx.AsyncClient | None = None,
        source_name: str | None = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self.timeout_seconds = timeout_seconds
        self.source_name = source_name or endpoint_url
        self._client = client
        self._owns_client = client is None
        self.logger = logger.bind(source=self.source_name)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))
        return self._client

    async def fetch(self) -> Result[float, MetricSourceError]:
        try:
            response = await self._get_client().get(self.endpoint_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return Result.err(
                SourceUnavailable(f"endpoint returned HTTP {e.response.status_code}")
            )
        except httpx.HTTPError as e:
            return Result.err(SourceUnavailable(f"{type(e).__name__}: {e}"))

        try:
            payload = response.json()
        except ValueError as e:
            return Result.err(MalformedResponse(f"response body is not JSON: {e}"))

        try:
            value = extract_measurement(payload)
        except MalformedResponse as e:
            return Result.err(e)

        self.logger.debug("metric_fetched", value=value)
        return Result.ok(value)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
