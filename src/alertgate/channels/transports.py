"""Concrete channel transports and factory helpers."""

from __future__ import annotations

import asyncio
import json
import logging
import smtplib
from email.message import EmailMessage
from typing import Any
from urllib.error import HTTPError
from urllib.error import URLError
from urllib.request import Request
from urllib.request import urlopen

from alertgate.channels.base import EmailTransport
from alertgate.channels.base import PushTransport
from alertgate.config import EmailConfig
from alertgate.config import PushConfig
from alertgate.errors import TransportError
from alertgate.models.domain import Channel

logger = logging.getLogger(__name__)


class NoopPushTransport:
    """Push transport that accepts every send and keeps nothing."""

    async def send_push(self, user_id: str, payload: dict[str, Any]) -> None:
        logger.debug("noop push to %s: %s", user_id, payload.get("title"))


class NoopEmailTransport:
    """Email transport that accepts every send and keeps nothing."""

    async def send_email(self, address: str, subject: str, body: str) -> None:
        del body
        logger.debug("noop email to %s: %s", address, subject)


class LoggingLocalNotifier:
    """Local notifier that writes sound/visual notifications to the log."""

    def notify(self, channel: Channel, user_id: str, payload: dict[str, Any]) -> None:
        logger.info(
            "local %s notification user=%s alert=%s severity=%s",
            channel.value,
            user_id,
            payload.get("alert_id"),
            payload.get("severity"),
        )


class WebhookPushTransport:
    """Posts push payloads as JSON to a push gateway endpoint."""

    def __init__(
        self,
        *,
        endpoint_url: str,
        api_key: str | None = None,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._endpoint_url = endpoint_url
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds

    async def send_push(self, user_id: str, payload: dict[str, Any]) -> None:
        await asyncio.to_thread(self._send_sync, user_id, payload)

    def _send_sync(self, user_id: str, payload: dict[str, Any]) -> None:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        request = Request(
            url=self._endpoint_url,
            data=json.dumps({"user_id": user_id, "notification": payload}).encode(
                "utf-8"
            ),
            headers=headers,
            method="POST",
        )
        try:
            with urlopen(request, timeout=self._timeout_seconds) as response:
                status = getattr(response, "status", 200)
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise TransportError(f"push gateway HTTP {exc.code}: {detail[:200]}") from exc
        except URLError as exc:
            raise TransportError(f"push gateway network error: {exc.reason}") from exc
        except OSError as exc:
            raise TransportError(f"push gateway IO error: {exc}") from exc

        if status >= 300:
            raise TransportError(f"push gateway returned HTTP {status}")


class SMTPEmailTransport:
    """Sends plain-text alert emails through an SMTP relay."""

    def __init__(self, config: EmailConfig) -> None:
        self._config = config

    async def send_email(self, address: str, subject: str, body: str) -> None:
        await asyncio.to_thread(self._send_sync, address, subject, body)

    def _build_message(self, address: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._config.sender
        message["To"] = address
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _send_sync(self, address: str, subject: str, body: str) -> None:
        cfg = self._config
        message = self._build_message(address, subject, body)
        try:
            with smtplib.SMTP(
                cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout_seconds
            ) as smtp:
                if cfg.use_tls:
                    smtp.starttls()
                if cfg.username and cfg.password:
                    smtp.login(cfg.username, cfg.password)
                smtp.send_message(message)
        except smtplib.SMTPException as exc:
            raise TransportError(f"smtp error: {exc}") from exc
        except OSError as exc:
            raise TransportError(f"smtp connection error: {exc}") from exc


def build_push_transport(config: PushConfig) -> PushTransport:
    """Create a concrete push transport from ``PushConfig``."""

    provider = config.provider.strip().lower()
    if provider == "webhook":
        if not config.endpoint_url:
            raise ValueError(
                "push_config.endpoint_url is required when provider='webhook'"
            )
        return WebhookPushTransport(
            endpoint_url=config.endpoint_url,
            api_key=config.api_key,
            timeout_seconds=config.timeout_seconds,
        )
    if provider == "noop":
        return NoopPushTransport()
    raise ValueError(
        f"Unsupported push_config.provider '{config.provider}'. "
        "Supported providers: webhook, noop."
    )


def build_email_transport(config: EmailConfig) -> EmailTransport:
    """Create a concrete email transport from ``EmailConfig``."""

    provider = config.provider.strip().lower()
    if provider == "smtp":
        if not config.smtp_host:
            raise ValueError("email_config.smtp_host is required when provider='smtp'")
        return SMTPEmailTransport(config)
    if provider == "noop":
        return NoopEmailTransport()
    raise ValueError(
        f"Unsupported email_config.provider '{config.provider}'. "
        "Supported providers: smtp, noop."
    )
