"""Pydantic models for the MCP interface.

Input models validate tool arguments; output models shape responses.
FastMCP v2 serializes Pydantic models automatically.  Expected
failures are reported as ``status="rejected"`` with an ``error_code``
rather than raised.
"""

from __future__ import annotations

from pydantic import BaseModel
from pydantic import Field

from alertgate.audit.schemas import AuditEntry
from alertgate.models.domain import AlertPreference
from alertgate.models.domain import AlertRecord
from alertgate.models.domain import ChannelToggles
from alertgate.models.domain import DispatchReport
from alertgate.models.domain import Role
from alertgate.models.domain import Severity

# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------


class PreferenceInput(BaseModel):
    """Full replacement of a user's alert preference."""

    channels: ChannelToggles = Field(
        default_factory=ChannelToggles,
        description="Channel toggles; omitted channels default to enabled.",
    )
    min_severity: Severity = Field(
        default=Severity.low,
        description="Lowest severity that is still delivered.",
    )


class HistoryQueryInput(BaseModel):
    """Input for list_history."""

    user_id: str = Field(min_length=1)
    limit: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum number of records to return.",
    )


# ---------------------------------------------------------------------------
# Output models
# ---------------------------------------------------------------------------


class SubmitEventResult(BaseModel):
    """Response from submit_event."""

    accepted: bool
    status: str = Field(
        default="accepted",
        description="Ingestion status (accepted, rejected).",
    )
    alert_id: str | None = None
    priority_score: int | None = None
    reason: str | None = Field(
        default=None,
        description="Why the event was rejected (validation message, duplicate).",
    )
    error_code: str | None = None
    recipients: list[str] = Field(default_factory=list)
    report: DispatchReport | None = None


class PreferenceResult(BaseModel):
    """Response from get_preferences / set_preferences / reset_preferences."""

    status: str = "ok"
    preference: AlertPreference | None = None
    error_code: str | None = None
    message: str | None = None


class HistoryResult(BaseModel):
    """Response from list_history."""

    status: str = "ok"
    user_id: str = ""
    records: list[AlertRecord] = Field(default_factory=list)
    unacknowledged: int = 0
    error_code: str | None = None
    message: str | None = None


class AcknowledgeToolResult(BaseModel):
    """Response from acknowledge."""

    status: str = "ok"
    record_id: str
    acknowledged: bool = False
    changed: bool = False
    acknowledged_at: float | None = None
    error_code: str | None = None
    message: str | None = None


class BulkHistoryResult(BaseModel):
    """Response from acknowledge_all / clear_history."""

    status: str = "ok"
    user_id: str
    count: int = 0
    error_code: str | None = None
    message: str | None = None


class AuditTrailResult(BaseModel):
    """Response from get_audit_trail."""

    status: str = "ok"
    entries: list[AuditEntry] = Field(default_factory=list)
    error_code: str | None = None
    message: str | None = None


class RoleAssignmentResult(BaseModel):
    """Response from assign_role."""

    status: str = "ok"
    user_id: str
    role: Role | None = None
    previous_role: Role | None = None
    error_code: str | None = None
    message: str | None = None
