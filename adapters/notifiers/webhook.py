"""Chat webhook notifier (Slack/Teams/Mattermost style incoming webhooks)."""

from abc import ABC, abstractmethod
from typing import Any

import httpx
import structlog

from core.domain.errors import DeliveryFailed
from core.domain.models import Alert, Delivered
from core.services.metrics_collector import Result

logger = structlog.get_logger(__name__)


class HttpNotifier(ABC):
    """
    Base for notifiers that deliver by POSTing JSON.

    Transport errors and non-2xx statuses become DeliveryFailed; nothing raises.
    """

    channel = "http"

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None
        self.logger = logger.bind(channel=self.channel)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout_seconds))
        return self._client

    @abstractmethod
    def build_payload(self, alert: Alert) -> dict[str, Any]:
        """Request body for one alert."""

    def build_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    async def send(self, alert: Alert) -> Result[Delivered, DeliveryFailed]:
        try:
            response = await self._get_client().post(
                self.url, json=self.build_payload(alert), headers=self.build_headers()
            )
        except httpx.HTTPError as e:
            self.logger.debug("notification_request_error", error_type=type(e).__name__)
            return Result.err(DeliveryFailed(f"{type(e).__name__}: {e}", channel=self.channel))

        if not response.is_success:
            self.logger.debug("notification_rejected", status_code=response.status_code)
            return Result.err(
                DeliveryFailed(
                    f"HTTP {response.status_code}: {response.text[:200]}", channel=self.channel
                )
            )

        self.logger.debug("notification_accepted", status_code=response.status_code)
        return Result.ok(Delivered(channel=self.channel))

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class WebhookNotifier(HttpNotifier):
    """Posts ``{"text": ..., "alert": {...}}`` to an incoming-webhook URL."""

    channel = "webhook"

    def build_payload(self, alert: Alert) -> dict[str, Any]:
        return {
            "text": f"{alert.subject}\n{alert.message}",
            "alert": alert.model_dump(mode="json"),
        }
