"""Notification payload rendering for push and email channels."""

from __future__ import annotations

from datetime import datetime
from datetime import timezone
from typing import Any

from alertgate.models.domain import Alert
from alertgate.models.domain import Severity

_SEVERITY_MARKERS: dict[Severity, str] = {
    Severity.critical: "🚨",
    Severity.high: "⚠️",
    Severity.medium: "🔶",
    Severity.low: "ℹ️",
}


def _format_time(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime(
        "%Y-%m-%d %H:%M:%S UTC"
    )


def render_push_payload(alert: Alert) -> dict[str, Any]:
    """Build the push body; critical alerts stay on screen until dismissed."""
    marker = _SEVERITY_MARKERS[alert.severity]
    return {
        "title": f"{marker} {alert.severity.value.upper()} Security Alert",
        "body": f"{alert.type}: {alert.description or 'Security event detected'}",
        "tag": alert.id,
        "alert_id": alert.id,
        "severity": alert.severity.value,
        "category": alert.category,
        "priority_score": alert.priority_score,
        "require_interaction": alert.severity == Severity.critical,
    }


def render_local_payload(alert: Alert) -> dict[str, Any]:
    return {
        "alert_id": alert.id,
        "severity": alert.severity.value,
        "type": alert.type,
        "description": alert.description,
    }


def render_email(alert: Alert) -> tuple[str, str]:
    """Return ``(subject, body)`` for an alert email."""
    subject = f"[{alert.severity.value.upper()}] Security Alert: {alert.type}"
    if alert.source:
        subject += f" on {alert.source}"
    lines = [
        "A security event requires your attention.",
        "",
        f"Severity:    {alert.severity.value.upper()}",
        f"Type:        {alert.type}",
        f"Category:    {alert.category}",
        f"Source:      {alert.source or 'unknown'}",
        f"Detected at: {_format_time(alert.detected_at)}",
        f"Priority:    {alert.priority_score}",
        f"Alert ID:    {alert.id}",
    ]
    if alert.description:
        lines.extend(["", alert.description])
    lines.extend(["", "This is an automated security alert."])
    return subject, "\n".join(lines)
