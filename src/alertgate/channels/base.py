"""Channel transport protocols.

Transports are opaque, swappable collaborators.  A failed send raises
``TransportError``; the dispatcher owns retries and timeouts.
"""

from __future__ import annotations

from typing import Any
from typing import Protocol
from typing import runtime_checkable

from alertgate.models.domain import Channel


@runtime_checkable
class PushTransport(Protocol):
    """Delivers a push notification to a user's registered devices."""

    async def send_push(self, user_id: str, payload: dict[str, Any]) -> None: ...


@runtime_checkable
class EmailTransport(Protocol):
    """Delivers a plain-text email."""

    async def send_email(self, address: str, subject: str, body: str) -> None: ...


@runtime_checkable
class LocalNotifier(Protocol):
    """In-process sound/visual notification hook (console toast, beep)."""

    def notify(self, channel: Channel, user_id: str, payload: dict[str, Any]) -> None: ...
