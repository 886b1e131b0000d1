"""Unit tests for payload rendering and channel transport factories."""

from __future__ import annotations

import json
from unittest.mock import MagicMock
from unittest.mock import patch
from urllib.error import URLError

import pytest

from alertgate.channels import build_email_transport
from alertgate.channels import build_push_transport
from alertgate.channels import EmailTransport
from alertgate.channels import LocalNotifier
from alertgate.channels import LoggingLocalNotifier
from alertgate.channels import NoopEmailTransport
from alertgate.channels import NoopPushTransport
from alertgate.channels import PushTransport
from alertgate.channels import render_email
from alertgate.channels import render_local_payload
from alertgate.channels import render_push_payload
from alertgate.channels import SMTPEmailTransport
from alertgate.channels import WebhookPushTransport
from alertgate.config import EmailConfig
from alertgate.config import PushConfig
from alertgate.engine import EventClassifier
from alertgate.errors import TransportError
from alertgate.models.domain import RawEvent


def _alert(severity: str = "high", **overrides):
    fields = {
        "type": "privilege_escalation",
        "severity": severity,
        "category": "identity",
        "source": "dc-01",
        "description": "User added to Domain Admins",
        "detected_at": 0.0,
    }
    fields.update(overrides)
    return EventClassifier().classify(RawEvent(**fields))


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TestPushPayload:
    def test_fields(self):
        alert = _alert()
        payload = render_push_payload(alert)
        assert payload["title"].endswith("HIGH Security Alert")
        assert payload["body"] == "privilege_escalation: User added to Domain Admins"
        assert payload["tag"] == alert.id
        assert payload["alert_id"] == alert.id
        assert payload["priority_score"] == 34
        assert payload["require_interaction"] is False

    def test_critical_requires_interaction(self):
        assert render_push_payload(_alert("critical"))["require_interaction"] is True

    def test_missing_description_uses_fallback(self):
        payload = render_push_payload(_alert(description=None))
        assert payload["body"] == "privilege_escalation: Security event detected"

    def test_local_payload(self):
        alert = _alert()
        assert render_local_payload(alert) == {
            "alert_id": alert.id,
            "severity": "high",
            "type": "privilege_escalation",
            "description": "User added to Domain Admins",
        }


class TestEmailTemplate:
    def test_subject_includes_source(self):
        subject, _ = render_email(_alert())
        assert subject == "[HIGH] Security Alert: privilege_escalation on dc-01"

    def test_subject_without_source(self):
        subject, _ = render_email(_alert(source=None))
        assert subject == "[HIGH] Security Alert: privilege_escalation"

    def test_body_lists_details(self):
        alert = _alert()
        _, body = render_email(alert)
        assert "Severity:    HIGH" in body
        assert "Category:    identity" in body
        assert "Detected at: 1970-01-01 00:00:00 UTC" in body
        assert f"Alert ID:    {alert.id}" in body
        assert "User added to Domain Admins" in body


# ---------------------------------------------------------------------------
# Transports
# ---------------------------------------------------------------------------


class TestBuiltinTransports:
    def test_noop_transports_satisfy_protocols(self):
        assert isinstance(NoopPushTransport(), PushTransport)
        assert isinstance(NoopEmailTransport(), EmailTransport)
        assert isinstance(LoggingLocalNotifier(), LocalNotifier)

    async def test_noop_transports_accept_sends(self):
        await NoopPushTransport().send_push("u1", {"title": "t"})
        await NoopEmailTransport().send_email("a@example.com", "s", "b")


class TestWebhookPushTransport:
    async def test_posts_json_with_bearer_token(self):
        transport = WebhookPushTransport(
            endpoint_url="https://push.example.com/notify", api_key="k1"
        )
        response = MagicMock()
        response.status = 202
        response.__enter__.return_value = response

        with patch(
            "alertgate.channels.transports.urlopen", return_value=response
        ) as mock_urlopen:
            await transport.send_push("u1", {"title": "t"})

        request = mock_urlopen.call_args.args[0]
        assert request.full_url == "https://push.example.com/notify"
        assert request.get_header("Authorization") == "Bearer k1"
        assert json.loads(request.data) == {"user_id": "u1", "notification": {"title": "t"}}

    async def test_network_error_raises_transport_error(self):
        transport = WebhookPushTransport(endpoint_url="https://push.example.com/notify")
        with patch(
            "alertgate.channels.transports.urlopen",
            side_effect=URLError("connection refused"),
        ):
            with pytest.raises(TransportError, match="network error"):
                await transport.send_push("u1", {})

    async def test_non_2xx_status_raises(self):
        transport = WebhookPushTransport(endpoint_url="https://push.example.com/notify")
        response = MagicMock()
        response.status = 302
        response.__enter__.return_value = response
        with patch("alertgate.channels.transports.urlopen", return_value=response):
            with pytest.raises(TransportError, match="HTTP 302"):
                await transport.send_push("u1", {})


class TestSMTPEmailTransport:
    def test_builds_message(self):
        transport = SMTPEmailTransport(EmailConfig(sender="soc@example.com"))
        message = transport._build_message("a@example.com", "Subject", "Body")
        assert message["From"] == "soc@example.com"
        assert message["To"] == "a@example.com"
        assert message["Subject"] == "Subject"
        assert message.get_content().strip() == "Body"

    async def test_sends_with_starttls_and_login(self):
        config = EmailConfig(provider="smtp", username="u", password="p")
        transport = SMTPEmailTransport(config)
        smtp = MagicMock()
        smtp.__enter__.return_value = smtp

        with patch("alertgate.channels.transports.smtplib.SMTP", return_value=smtp):
            await transport.send_email("a@example.com", "s", "b")

        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("u", "p")
        smtp.send_message.assert_called_once()

    async def test_connection_error_raises_transport_error(self):
        transport = SMTPEmailTransport(EmailConfig(provider="smtp"))
        with patch(
            "alertgate.channels.transports.smtplib.SMTP",
            side_effect=ConnectionRefusedError("refused"),
        ):
            with pytest.raises(TransportError, match="smtp connection error"):
                await transport.send_email("a@example.com", "s", "b")


class TestFactories:
    def test_push_noop(self):
        assert isinstance(build_push_transport(PushConfig()), NoopPushTransport)

    def test_push_webhook(self):
        transport = build_push_transport(
            PushConfig(provider="webhook", endpoint_url="https://push.example.com")
        )
        assert isinstance(transport, WebhookPushTransport)

    def test_push_webhook_requires_url(self):
        with pytest.raises(ValueError, match="endpoint_url is required"):
            build_push_transport(PushConfig(provider="webhook"))

    def test_push_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported push_config.provider"):
            build_push_transport(PushConfig(provider="pigeon"))

    def test_email_smtp(self):
        assert isinstance(
            build_email_transport(EmailConfig(provider="SMTP")), SMTPEmailTransport
        )

    def test_email_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported email_config.provider"):
            build_email_transport(EmailConfig(provider="fax"))
