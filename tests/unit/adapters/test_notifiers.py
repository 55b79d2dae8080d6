"""Tests for alert delivery channels."""

import json
from collections.abc import Callable
from datetime import UTC, datetime
from io import StringIO

import httpx
import pytest
from rich.console import Console
from structlog.testing import capture_logs

from adapters.notifiers import ConsoleNotifier, HttpNotifier, SendGridNotifier, WebhookNotifier
from core.domain.models import Alert

ALERT = Alert(
    metric_name="cpuMetrics",
    threshold_value=24.0,
    current_value=25.0,
    timestamp=datetime(2024, 1, 1, 12, 0, tzinfo=UTC),
)


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def test_console_notifier_renders_alert() -> None:
    buffer = StringIO()
    notifier = ConsoleNotifier(Console(file=buffer, width=100, color_system=None))

    result = await notifier.send(ALERT)

    assert result.is_ok()
    assert result.unwrap().channel == "console"
    output = buffer.getvalue()
    assert "cpuMetrics" in output
    assert "25" in output
    assert "24" in output


async def test_webhook_posts_alert_json() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="ok")

    notifier = WebhookNotifier("https://chat.test/hooks/abc", client=_client(handler))
    result = await notifier.send(ALERT)

    assert result.is_ok()
    assert result.unwrap().channel == "webhook"
    body = json.loads(seen[0].content)
    assert seen[0].method == "POST"
    assert "cpuMetrics" in body["text"]
    assert body["alert"]["current_value"] == 25.0
    assert body["alert"]["threshold_value"] == 24.0


async def test_webhook_error_status_is_delivery_failed() -> None:
    notifier = WebhookNotifier(
        "https://chat.test/hooks/abc",
        client=_client(lambda request: httpx.Response(500, text="internal error")),
    )

    result = await notifier.send(ALERT)

    error = result.unwrap_err()
    assert error.channel == "webhook"
    assert "500" in error.reason


async def test_webhook_transport_error_is_delivery_failed() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    notifier = WebhookNotifier("https://chat.test/hooks/abc", client=_client(handler))

    result = await notifier.send(ALERT)

    assert result.is_err()
    assert "ConnectError" in result.unwrap_err().reason


async def test_sendgrid_builds_mail_send_request() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202)

    notifier = SendGridNotifier(
        api_key="SG.test-key",
        from_email="alerts@example.com",
        to_email="admin@example.com",
        client=_client(handler),
    )
    result = await notifier.send(ALERT)

    assert result.is_ok()
    request = seen[0]
    assert str(request.url) == "https://api.sendgrid.com/v3/mail/send"
    assert request.headers["Authorization"] == "Bearer SG.test-key"
    body = json.loads(request.content)
    assert body["personalizations"][0]["to"][0]["email"] == "admin@example.com"
    assert body["from"]["email"] == "alerts@example.com"
    assert body["subject"] == ALERT.subject
    assert body["content"][0]["value"] == ALERT.message


async def test_sendgrid_rejection_is_delivery_failed() -> None:
    notifier = SendGridNotifier(
        api_key="SG.bad",
        from_email="alerts@example.com",
        to_email="admin@example.com",
        client=_client(lambda request: httpx.Response(401, json={"errors": []})),
    )

    result = await notifier.send(ALERT)

    assert result.unwrap_err().channel == "sendgrid"


def test_http_notifier_requires_a_payload_builder() -> None:
    with pytest.raises(TypeError):
        HttpNotifier("https://chat.test/hooks/abc")  # type: ignore[abstract]


async def test_webhook_logs_each_outcome() -> None:
    statuses = iter([200, 503])
    notifier = WebhookNotifier(
        "https://chat.test/hooks/abc",
        client=_client(lambda request: httpx.Response(next(statuses))),
    )

    with capture_logs() as logs:
        await notifier.send(ALERT)
        await notifier.send(ALERT)

    events = [(entry["event"], entry.get("status_code")) for entry in logs]
    assert events == [("notification_accepted", 200), ("notification_rejected", 503)]
    assert all(entry["channel"] == "webhook" for entry in logs)
