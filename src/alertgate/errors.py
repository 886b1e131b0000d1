"""Exception taxonomy for the alert engine.

Only validation and permission failures stop the request that raised
them.  Missing roles resolve to a default, transport failures are
folded into the dispatch report, and rate limiting is a delivery
status rather than an exception.
"""

from __future__ import annotations


class AlertGateError(Exception):
    """Base class for all engine errors."""


class EventValidationError(AlertGateError):
    """Raised when a raw event cannot be classified."""


class RoleNotFound(AlertGateError):
    """Raised when an identity has no role assignment."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No role assigned to user {user_id!r}")
        self.user_id = user_id


class RecordNotFound(AlertGateError):
    """Raised when an alert record id does not exist."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Alert record {record_id!r} not found")
        self.record_id = record_id


class PermissionDenied(AlertGateError):
    """Raised when an actor lacks the role required for an operation."""


class TransportError(AlertGateError):
    """Raised by a channel transport when a send fails."""
