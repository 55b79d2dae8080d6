"""Email notifier using the SendGrid v3 ``mail/send`` API."""

from typing import Any

import httpx

from adapters.notifiers.webhook import HttpNotifier
from core.domain.models import Alert

SENDGRID_MAIL_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


class SendGridNotifier(HttpNotifier):
    """Sends a plain-text email per alert. SendGrid answers 202 on acceptance."""

    channel = "sendgrid"

    def __init__(
        self,
        api_key: str,
        from_email: str,
        to_email: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
        url: str = SENDGRID_MAIL_SEND_URL,
    ) -> None:
        super().__init__(url, timeout_seconds=timeout_seconds, client=client)
        self._api_key = api_key
        self.from_email = from_email
        self.to_email = to_email

    def build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def build_payload(self, alert: Alert) -> dict[str, Any]:
        return {
            "personalizations": [{"to": [{"email": self.to_email}]}],
            "from": {"email": self.from_email},
            "subject": alert.subject,
            "content": [{"type": "text/plain", "value": alert.message}],
        }
