"""Audit entry types and data models."""

from __future__ import annotations

import time
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel
from pydantic import Field


class AuditAction(str, Enum):
    """Categories of auditable actions."""

    DISPATCH = "dispatch"
    ACKNOWLEDGE = "acknowledge"
    ACKNOWLEDGE_ALL = "acknowledge_all"
    CLEAR_HISTORY = "clear_history"
    PREFERENCE_CHANGE = "preference_change"
    ROLE_CHANGE = "role_change"
    EVENT_REJECTED = "event_rejected"


class AuditEntry(BaseModel):
    """A single immutable audit log entry."""

    model_config = {"frozen": True}

    id: str = Field(
        default_factory=lambda: f"audit_{uuid.uuid4().hex}",
        description="Unique identifier, auto-generated as audit_{uuid4_hex}.",
    )
    actor_id: str = Field(
        description="User or component that performed the action.",
    )
    action: AuditAction = Field(
        description="Category of the audited action.",
    )
    target: str = Field(
        description="Identifier of the affected object (record, user, alert).",
    )
    timestamp: float = Field(
        default_factory=time.time,
        description="Unix epoch when the action occurred.",
    )
    outcome: str = Field(
        description="Result of the action, e.g. delivered, failed, no_op.",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Arbitrary action-specific data.",
    )


class AuditFilter(BaseModel):
    """Criteria for reading the audit trail back."""

    actor_id: str | None = None
    action: AuditAction | None = None
    target: str | None = None
    since: float | None = None
    until: float | None = None
    limit: int | None = Field(default=None, ge=1)

    def matches(self, entry: AuditEntry) -> bool:
        if self.actor_id is not None and entry.actor_id != self.actor_id:
            return False
        if self.action is not None and entry.action != self.action:
            return False
        if self.target is not None and entry.target != self.target:
            return False
        if self.since is not None and entry.timestamp < self.since:
            return False
        if self.until is not None and entry.timestamp > self.until:
            return False
        return True
