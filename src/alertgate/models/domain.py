"""Domain models for events, alerts, preferences and history records.

Everything the engine persists or returns is a pydantic model so it can
be stored as a JSON string in Redis and returned verbatim by the MCP
tools.  Field names follow the persisted shape.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import Field
from pydantic import model_validator

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Severity(str, Enum):
    """Severity level of a security event, ordered low to critical."""

    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    def at_least(self, other: Severity) -> bool:
        """Return whether this severity is ``>=`` *other*."""
        return self.rank >= other.rank


_SEVERITY_RANK: dict[Severity, int] = {
    Severity.low: 1,
    Severity.medium: 2,
    Severity.high: 3,
    Severity.critical: 4,
}


class Role(str, Enum):
    """Console role; a total order admin > analyst > viewer."""

    admin = "admin"
    analyst = "analyst"
    viewer = "viewer"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]


_ROLE_RANK: dict[Role, int] = {
    Role.viewer: 1,
    Role.analyst: 2,
    Role.admin: 3,
}


class Channel(str, Enum):
    """Delivery mechanism for an alert."""

    sound = "sound"
    visual = "visual"
    push = "push"
    email = "email"

    @property
    def is_local(self) -> bool:
        """Sound and visual are in-process and fire-and-forget."""
        return self in (Channel.sound, Channel.visual)


class DeliveryStatus(str, Enum):
    """Outcome of one (user, channel) delivery attempt."""

    delivered = "delivered"
    failed = "failed"
    rate_limited = "rate_limited"
    timed_out = "timed_out"


# ---------------------------------------------------------------------------
# Events and alerts
# ---------------------------------------------------------------------------


class RawEvent(BaseModel):
    """Inbound security event as handed over by the event source.

    Every field is optional here; the classifier decides what is
    acceptable so that a malformed event yields a rejection reason
    rather than a schema error at the boundary.
    """

    model_config = {"extra": "ignore"}

    event_id: str | None = Field(
        default=None,
        description="Identifier assigned by the event source, if any.",
    )
    type: str | None = Field(
        default=None,
        description="Event type, e.g. 'brute_force' or 'malware_detected'.",
    )
    severity: str | None = Field(
        default=None,
        description="One of low, medium, high, critical.",
    )
    category: str | None = Field(
        default=None,
        description="Visibility category: security, identity, compliance, informational.",
    )
    source: str | None = Field(
        default=None,
        description="Originating sensor, host or service.",
    )
    description: str | None = Field(
        default=None,
        description="Free-text description shown in notifications.",
    )
    detected_at: float | None = Field(
        default=None,
        description="Unix epoch when the event was detected.",
    )
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Arbitrary source-specific data.",
    )


class Alert(BaseModel):
    """Canonical, classified representation of a raw event."""

    model_config = {"frozen": True}

    id: str = Field(
        default_factory=lambda: f"alert_{uuid.uuid4().hex}",
        description="Unique identifier, auto-generated as alert_{uuid4_hex}.",
    )
    event_id: str = Field(
        description="Identifier of the raw event this alert was derived from.",
    )
    type: str = Field(
        description="Normalized event type.",
    )
    category: str = Field(
        description="Normalized visibility category.",
    )
    severity: Severity
    priority_score: int = Field(
        description="severity_weight * 10 + category_weight.",
    )
    source: str | None = None
    description: str | None = None
    fingerprint: str = Field(
        description="Deterministic hash used for duplicate suppression.",
    )
    detected_at: float = Field(
        default_factory=time.time,
        description="Unix epoch when the event was detected.",
    )
    created_at: float = Field(
        default_factory=time.time,
        description="Unix epoch when the alert was classified.",
    )


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


class ChannelToggles(BaseModel):
    """Which channels are enabled for a user."""

    sound: bool = True
    visual: bool = True
    push: bool = True
    email: bool = True

    def is_enabled(self, channel: Channel) -> bool:
        return bool(getattr(self, channel.value))

    def enabled_channels(self) -> list[Channel]:
        return [channel for channel in Channel if self.is_enabled(channel)]


class AlertPreference(BaseModel):
    """Per-user alert configuration; one active record per user."""

    user_id: str
    channels: ChannelToggles = Field(default_factory=ChannelToggles)
    min_severity: Severity = Severity.low
    updated_at: float = Field(
        default=0.0,
        description="Unix epoch of the last explicit update; 0 for defaults.",
    )

    @classmethod
    def default(cls, user_id: str) -> AlertPreference:
        """All channels enabled, every severity delivered."""
        return cls(user_id=user_id)


# ---------------------------------------------------------------------------
# Dispatch results and history
# ---------------------------------------------------------------------------


class ChannelDelivery(BaseModel):
    """Result of delivering one alert to one user over one channel."""

    user_id: str
    channel: Channel
    status: DeliveryStatus
    attempts: int = 0
    error: str | None = None


class DispatchReport(BaseModel):
    """Collected outcome of one ``dispatch`` call."""

    alert_id: str
    deliveries: list[ChannelDelivery] = Field(default_factory=list)
    record_ids: list[str] = Field(default_factory=list)

    def status_for(self, user_id: str, channel: Channel) -> DeliveryStatus | None:
        for delivery in self.deliveries:
            if delivery.user_id == user_id and delivery.channel == channel:
                return delivery.status
        return None

    def by_user(self) -> dict[str, list[ChannelDelivery]]:
        grouped: dict[str, list[ChannelDelivery]] = {}
        for delivery in self.deliveries:
            grouped.setdefault(delivery.user_id, []).append(delivery)
        return grouped

    @property
    def delivered_count(self) -> int:
        return sum(
            1 for d in self.deliveries if d.status == DeliveryStatus.delivered
        )


class AlertRecord(BaseModel):
    """History entry for one alert delivered to one user."""

    id: str = Field(
        default_factory=lambda: f"rec_{uuid.uuid4().hex}",
        description="Unique identifier, auto-generated as rec_{uuid4_hex}.",
    )
    alert_id: str
    user_id: str
    alert: Alert = Field(
        description="Snapshot of the alert this record refers to.",
    )
    delivered: dict[Channel, bool] = Field(default_factory=dict)
    outcomes: dict[Channel, DeliveryStatus] = Field(default_factory=dict)
    acknowledged: bool = False
    acknowledged_at: float | None = None
    created_at: float = Field(default_factory=time.time)

    @model_validator(mode="after")
    def _check_invariants(self) -> AlertRecord:
        if self.alert_id != self.alert.id:
            raise ValueError("alert_id must match the embedded alert")
        if self.acknowledged != (self.acknowledged_at is not None):
            raise ValueError("acknowledged_at must be set iff acknowledged")
        return self

    @classmethod
    def from_deliveries(
        cls,
        alert: Alert,
        user_id: str,
        deliveries: list[ChannelDelivery],
    ) -> AlertRecord:
        """Build a record for *user_id* from that user's channel deliveries."""
        own = [d for d in deliveries if d.user_id == user_id]
        return cls(
            alert_id=alert.id,
            user_id=user_id,
            alert=alert,
            delivered={
                d.channel: d.status == DeliveryStatus.delivered for d in own
            },
            outcomes={d.channel: d.status for d in own},
        )
