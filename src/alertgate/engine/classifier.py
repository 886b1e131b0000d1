"""Event classifier — validates raw events into canonical alerts.

Scoring is a pure function of the event: identical inputs always yield
the same ``priority_score`` and ``fingerprint``, which duplicate
suppression relies on.
"""

from __future__ import annotations

import hashlib
import json
import time

from alertgate.errors import EventValidationError
from alertgate.models.domain import Alert
from alertgate.models.domain import RawEvent
from alertgate.models.domain import Severity

SEVERITY_WEIGHTS: dict[Severity, int] = {
    Severity.low: 1,
    Severity.medium: 2,
    Severity.high: 3,
    Severity.critical: 4,
}

CATEGORY_WEIGHTS: dict[str, int] = {
    "security": 5,
    "identity": 4,
    "compliance": 3,
    "informational": 0,
}

DEFAULT_CATEGORY = "informational"


def parse_severity(raw: str | None) -> Severity:
    """Parse a severity label case-insensitively."""
    if raw is None or not raw.strip():
        raise EventValidationError("severity is required")
    try:
        return Severity(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in Severity)
        raise EventValidationError(
            f"severity {raw!r} is not one of: {allowed}"
        ) from None


def normalize_category(raw: str | None) -> str:
    if raw is None or not raw.strip():
        return DEFAULT_CATEGORY
    return raw.strip().lower()


def priority_score(severity: Severity, category: str) -> int:
    """``severity_weight * 10 + category_weight``; unknown categories weigh 0."""
    return SEVERITY_WEIGHTS[severity] * 10 + CATEGORY_WEIGHTS.get(category, 0)


def _normalized_type(raw: RawEvent) -> str:
    if raw.type is None or not raw.type.strip():
        raise EventValidationError("type is required")
    return raw.type.strip()


def fingerprint(raw: RawEvent) -> str:
    """Return a stable hash of the fields that identify a repeated event.

    A source-assigned ``event_id`` identifies the occurrence on its own
    terms.  Without one, ``detected_at`` and the canonical metadata do, so
    two sightings of the same kind of event are only duplicates when they
    carry the same detection time and payload.  The free-text description
    never takes part.
    """
    parts = [
        _normalized_type(raw).lower(),
        normalize_category(raw.category),
        parse_severity(raw.severity).value,
        (raw.source or "").strip().lower(),
    ]
    if raw.event_id:
        parts.append(f"id={raw.event_id.strip()}")
    else:
        if raw.detected_at is not None:
            parts.append(f"at={raw.detected_at!r}")
        if raw.metadata:
            parts.append(
                "meta=" + json.dumps(raw.metadata, sort_keys=True, default=str)
            )
    return hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()


class EventClassifier:
    """Turns ``RawEvent`` instances into ``Alert`` records."""

    def classify(self, raw: RawEvent) -> Alert:
        """Validate *raw* and build the canonical alert.

        Raises ``EventValidationError`` before any state is touched when
        ``type`` or ``severity`` is missing or unrecognized.
        """
        event_type = _normalized_type(raw)
        severity = parse_severity(raw.severity)
        category = normalize_category(raw.category)
        fp = fingerprint(raw)
        now = time.time()
        return Alert(
            event_id=raw.event_id or f"evt_{fp[:16]}",
            type=event_type,
            category=category,
            severity=severity,
            priority_score=priority_score(severity, category),
            source=raw.source,
            description=raw.description,
            fingerprint=fp,
            detected_at=raw.detected_at if raw.detected_at is not None else now,
            created_at=now,
        )
