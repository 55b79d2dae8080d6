"""Alert delivery channels."""

from adapters.notifiers.console import ConsoleNotifier
from adapters.notifiers.sendgrid import SendGridNotifier
from adapters.notifiers.webhook import HttpNotifier, WebhookNotifier

__all__ = [
    "ConsoleNotifier",
    "HttpNotifier",
    "SendGridNotifier",
    "WebhookNotifier",
]
