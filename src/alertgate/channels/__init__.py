"""Channel domain — transports and payload rendering."""

from alertgate.channels.base import EmailTransport
from alertgate.channels.base import LocalNotifier
from alertgate.channels.base import PushTransport
from alertgate.channels.templates import render_email
from alertgate.channels.templates import render_local_payload
from alertgate.channels.templates import render_push_payload
from alertgate.channels.transports import build_email_transport
from alertgate.channels.transports import build_push_transport
from alertgate.channels.transports import LoggingLocalNotifier
from alertgate.channels.transports import NoopEmailTransport
from alertgate.channels.transports import NoopPushTransport
from alertgate.channels.transports import SMTPEmailTransport
from alertgate.channels.transports import WebhookPushTransport

__all__ = [
    "EmailTransport",
    "LocalNotifier",
    "LoggingLocalNotifier",
    "NoopEmailTransport",
    "NoopPushTransport",
    "PushTransport",
    "SMTPEmailTransport",
    "WebhookPushTransport",
    "build_email_transport",
    "build_push_transport",
    "render_email",
    "render_local_payload",
    "render_push_payload",
]
