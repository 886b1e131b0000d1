"""AlertGate — FastMCP v2 server exposing the alert engine as MCP tools.

Tools delegate to ``AlertEngine`` (Redis-backed).  Call
``configure(redis_url=...)`` before using the server.
"""

from __future__ import annotations

from time import perf_counter
from typing import Any

from fastmcp import FastMCP
from pydantic import ValidationError
from redis.asyncio import Redis  # type: ignore[import-untyped]

from alertgate.audit import AuditFilter
from alertgate.auth import create_mcp_auth
from alertgate.channels import build_email_transport
from alertgate.channels import build_push_transport
from alertgate.channels import EmailTransport
from alertgate.channels import LocalNotifier
from alertgate.channels import PushTransport
from alertgate.config import AuditConfig
from alertgate.config import DedupConfig
from alertgate.config import DispatchConfig
from alertgate.config import EmailConfig
from alertgate.config import HistoryConfig
from alertgate.config import PushConfig
from alertgate.errors import PermissionDenied
from alertgate.errors import RecordNotFound
from alertgate.identity import IdentityDirectory
from alertgate.models.domain import AlertPreference
from alertgate.models.domain import Role
from alertgate.models.schemas import AcknowledgeToolResult
from alertgate.models.schemas import AuditTrailResult
from alertgate.models.schemas import BulkHistoryResult
from alertgate.models.schemas import HistoryQueryInput
from alertgate.models.schemas import HistoryResult
from alertgate.models.schemas import PreferenceInput
from alertgate.models.schemas import PreferenceResult
from alertgate.models.schemas import RoleAssignmentResult
from alertgate.models.schemas import SubmitEventResult
from alertgate.observability import delivery_metrics_snapshot
from alertgate.observability import latency_metrics_snapshot
from alertgate.observability import record_latency
from alertgate.service import AlertEngine

mcp = FastMCP("AlertGate", auth=create_mcp_auth())

# ---------------------------------------------------------------------------
# Engine instance (set via configure())
# ---------------------------------------------------------------------------

_engine: AlertEngine | None = None
_redis: Redis | None = None
_owns_redis = False


async def configure(
    redis_url: str = "redis://localhost:6379",
    *,
    redis_client: Redis | None = None,
    directory: IdentityDirectory | None = None,
    push: PushTransport | None = None,
    email: EmailTransport | None = None,
    local: LocalNotifier | None = None,
    push_config: PushConfig | None = None,
    email_config: EmailConfig | None = None,
    dispatch_config: DispatchConfig | None = None,
    history_config: HistoryConfig | None = None,
    dedup_config: DedupConfig | None = None,
    audit_config: AuditConfig | None = None,
    admins: list[str] | None = None,
) -> AlertEngine:
    """Initialize the engine backend.

    Must be called before the MCP tools can function.  ``admins`` seeds
    the identity directory so that role assignment can be bootstrapped.
    """
    global _engine, _redis, _owns_redis
    await shutdown()

    if redis_client is None:
        _redis = Redis.from_url(redis_url)
        _owns_redis = True
    else:
        _redis = redis_client
        _owns_redis = False

    _engine = AlertEngine.from_redis(
        _redis,
        directory=directory,
        push=push or build_push_transport(push_config or PushConfig()),
        email=email or build_email_transport(email_config or EmailConfig()),
        local=local,
        dispatch_config=dispatch_config,
        history_config=history_config,
        dedup_config=dedup_config,
        audit_config=audit_config,
    )
    for admin_id in admins or []:
        await _engine.directory.assign(admin_id, Role.admin)
    return _engine


async def shutdown() -> None:
    """Close backend clients and release server resources."""
    global _engine, _redis, _owns_redis
    if _redis is not None and _owns_redis:
        await _redis.aclose()
    _redis = None
    _owns_redis = False
    _engine = None


def _get_engine() -> AlertEngine:
    """Return the engine instance or raise."""
    if _engine is None:
        raise RuntimeError("Alert engine not configured. Call configure() first.")
    return _engine


def _validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0] if exc.errors() else {}
    return str(err.get("msg", "Invalid input"))


def _record(operation: str, start: float, ok: bool) -> None:
    record_latency(
        operation=f"mcp.{operation}",
        duration_ms=(perf_counter() - start) * 1000,
        ok=ok,
    )


# ---------------------------------------------------------------------------
# Tools — events
# ---------------------------------------------------------------------------


@mcp.tool
async def submit_event(
    type: str | None = None,
    severity: str | None = None,
    category: str | None = None,
    source: str | None = None,
    description: str | None = None,
    detected_at: float | None = None,
    metadata: dict | None = None,
    event_id: str | None = None,
    candidate_user_ids: list[str] | None = None,
) -> SubmitEventResult:
    """Submit a raw security event for classification and dispatch.

    Args:
        type: Event type, e.g. brute_force.
        severity: One of low, medium, high, critical.
        category: security, identity, compliance or informational.
        source: Originating sensor or host.
        description: Free-text description used in notifications.
        detected_at: Unix epoch when the event was detected.
        metadata: Arbitrary source-specific data.
        event_id: Identifier assigned by the event source.
        candidate_user_ids: Restrict delivery to these users (default: all).
    """
    start = perf_counter()
    ok = False
    try:
        engine = _get_engine()
        raw = {
            "event_id": event_id,
            "type": type,
            "severity": severity,
            "category": category,
            "source": source,
            "description": description,
            "detected_at": detected_at,
            "metadata": metadata or {},
        }
        result = await engine.submit_event(raw, candidate_user_ids)
        ok = result.accepted
        return result
    finally:
        _record("submit_event", start, ok)


# ---------------------------------------------------------------------------
# Tools — preferences
# ---------------------------------------------------------------------------


@mcp.tool
async def get_preferences(user_id: str) -> PreferenceResult:
    """Return the alert preference of a user (defaults when never set)."""
    start = perf_counter()
    ok = False
    try:
        preference = await _get_engine().get_preferences(user_id)
        ok = True
        return PreferenceResult(preference=preference)
    finally:
        _record("get_preferences", start, ok)


@mcp.tool
async def set_preferences(
    user_id: str,
    actor_id: str,
    channels: dict | None = None,
    min_severity: str = "low",
) -> PreferenceResult:
    """Replace a user's alert preference.

    Args:
        user_id: User whose preference is replaced.
        actor_id: Acting user; changing another user's preference needs admin.
        channels: Toggles for sound, visual, push, email (omitted = enabled).
        min_severity: Lowest severity still delivered.
    """
    start = perf_counter()
    ok = False
    try:
        engine = _get_engine()
        try:
            validated = PreferenceInput.model_validate(
                {"channels": channels or {}, "min_severity": min_severity}
            )
        except ValidationError as exc:
            return PreferenceResult(
                status="rejected",
                error_code="validation_error",
                message=_validation_message(exc),
            )
        try:
            stored = await engine.set_preferences(
                user_id,
                AlertPreference(
                    user_id=user_id,
                    channels=validated.channels,
                    min_severity=validated.min_severity,
                ),
                actor_id=actor_id,
            )
        except PermissionDenied as exc:
            return PreferenceResult(
                status="rejected", error_code="forbidden", message=str(exc)
            )
        ok = True
        return PreferenceResult(preference=stored)
    finally:
        _record("set_preferences", start, ok)


@mcp.tool
async def reset_preferences(
    user_id: str,
    actor_id: str,
) -> PreferenceResult:
    """Drop a user's stored preference so the defaults apply again."""
    start = perf_counter()
    ok = False
    try:
        try:
            preference = await _get_engine().reset_preferences(
                user_id, actor_id=actor_id
            )
        except PermissionDenied as exc:
            return PreferenceResult(
                status="rejected", error_code="forbidden", message=str(exc)
            )
        ok = True
        return PreferenceResult(preference=preference)
    finally:
        _record("reset_preferences", start, ok)


# ---------------------------------------------------------------------------
# Tools — history
# ---------------------------------------------------------------------------


@mcp.tool
async def list_history(user_id: str, actor_id: str, limit: int = 50) -> HistoryResult:
    """List a user's alert records, newest first.

    Records the owner's current role may not view are left out.

    Args:
        user_id: Owner of the history.
        actor_id: Acting user; reading another user's history needs admin.
        limit: Max records returned (1-1000).
    """
    start = perf_counter()
    ok = False
    try:
        engine = _get_engine()
        try:
            validated = HistoryQueryInput.model_validate(
                {"user_id": user_id, "limit": limit}
            )
        except ValidationError as exc:
            return HistoryResult(
                status="rejected",
                user_id=user_id,
                error_code="validation_error",
                message=_validation_message(exc),
            )
        try:
            records = await engine.list_history(
                validated.user_id, validated.limit, actor_id=actor_id
            )
            unacknowledged = await engine.unacknowledged_count(
                validated.user_id, actor_id=actor_id
            )
        except PermissionDenied as exc:
            return HistoryResult(
                status="rejected",
                user_id=validated.user_id,
                error_code="forbidden",
                message=str(exc),
            )
        ok = True
        return HistoryResult(
            user_id=validated.user_id,
            records=records,
            unacknowledged=unacknowledged,
        )
    finally:
        _record("list_history", start, ok)


@mcp.tool
async def acknowledge(
    record_id: str,
    actor_id: str,
) -> AcknowledgeToolResult:
    """Acknowledge one alert record.  Repeating the call is a no-op."""
    start = perf_counter()
    ok = False
    try:
        try:
            result = await _get_engine().acknowledge(record_id, actor_id=actor_id)
        except RecordNotFound as exc:
            return AcknowledgeToolResult(
                status="rejected",
                record_id=record_id,
                error_code="not_found",
                message=str(exc),
            )
        except PermissionDenied as exc:
            return AcknowledgeToolResult(
                status="rejected",
                record_id=record_id,
                error_code="forbidden",
                message=str(exc),
            )
        ok = True
        return AcknowledgeToolResult(
            record_id=record_id,
            acknowledged=result.record.acknowledged,
            changed=result.changed,
            acknowledged_at=result.record.acknowledged_at,
        )
    finally:
        _record("acknowledge", start, ok)


@mcp.tool
async def acknowledge_all(
    user_id: str,
    actor_id: str,
) -> BulkHistoryResult:
    """Acknowledge every pending alert record of a user."""
    start = perf_counter()
    ok = False
    try:
        try:
            count = await _get_engine().acknowledge_all(user_id, actor_id=actor_id)
        except PermissionDenied as exc:
            return BulkHistoryResult(
                status="rejected",
                user_id=user_id,
                error_code="forbidden",
                message=str(exc),
            )
        ok = True
        return BulkHistoryResult(user_id=user_id, count=count)
    finally:
        _record("acknowledge_all", start, ok)


@mcp.tool
async def clear_history(
    user_id: str,
    actor_id: str,
) -> BulkHistoryResult:
    """Delete a user's acknowledged alert records."""
    start = perf_counter()
    ok = False
    try:
        try:
            count = await _get_engine().clear_history(user_id, actor_id=actor_id)
        except PermissionDenied as exc:
            return BulkHistoryResult(
                status="rejected",
                user_id=user_id,
                error_code="forbidden",
                message=str(exc),
            )
        ok = True
        return BulkHistoryResult(user_id=user_id, count=count)
    finally:
        _record("clear_history", start, ok)


# ---------------------------------------------------------------------------
# Tools — administration
# ---------------------------------------------------------------------------


@mcp.tool
async def get_audit_trail(
    actor_id: str,
    action: str | None = None,
    target: str | None = None,
    performed_by: str | None = None,
    since: float | None = None,
    until: float | None = None,
    limit: int | None = 100,
) -> AuditTrailResult:
    """Read the audit trail (admin only).

    Args:
        actor_id: Acting user; must hold the admin role.
        action: Filter by action, e.g. dispatch, acknowledge.
        target: Filter by target id.
        performed_by: Filter by the actor recorded on the entry.
        since: Only entries at or after this Unix epoch.
        until: Only entries at or before this Unix epoch.
        limit: Keep only the most recent N matches.
    """
    start = perf_counter()
    ok = False
    try:
        engine = _get_engine()
        try:
            audit_filter = AuditFilter.model_validate(
                {
                    "actor_id": performed_by,
                    "action": action,
                    "target": target,
                    "since": since,
                    "until": until,
                    "limit": limit,
                }
            )
        except ValidationError as exc:
            return AuditTrailResult(
                status="rejected",
                error_code="validation_error",
                message=_validation_message(exc),
            )
        try:
            entries = await engine.get_audit_trail(actor_id, audit_filter)
        except PermissionDenied as exc:
            return AuditTrailResult(
                status="rejected", error_code="forbidden", message=str(exc)
            )
        ok = True
        return AuditTrailResult(entries=entries)
    finally:
        _record("get_audit_trail", start, ok)


@mcp.tool
async def assign_role(
    actor_id: str,
    user_id: str,
    role: str,
    email: str | None = None,
) -> RoleAssignmentResult:
    """Assign a role (admin, analyst, viewer) to a user (admin only)."""
    start = perf_counter()
    ok = False
    try:
        engine = _get_engine()
        try:
            role_enum = Role(role.strip().lower())
        except ValueError:
            return RoleAssignmentResult(
                status="rejected",
                user_id=user_id,
                error_code="invalid_role",
                message=f"Invalid role: {role}",
            )
        try:
            previous = await engine.assign_role(
                actor_id, user_id, role_enum, email=email
            )
        except PermissionDenied as exc:
            return RoleAssignmentResult(
                status="rejected",
                user_id=user_id,
                error_code="forbidden",
                message=str(exc),
            )
        ok = True
        return RoleAssignmentResult(
            user_id=user_id, role=role_enum, previous_role=previous
        )
    finally:
        _record("assign_role", start, ok)


@mcp.tool
async def get_health() -> dict[str, Any]:
    """Report audit sink health and in-process delivery/latency metrics."""
    health = _get_engine().audit_health()
    return {
        "audit": {
            "healthy": health.healthy,
            "failure_count": health.failure_count,
            "last_error": health.last_error,
        },
        "deliveries": delivery_metrics_snapshot(),
        "latency": latency_metrics_snapshot(),
    }
