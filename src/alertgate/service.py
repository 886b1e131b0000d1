"""AlertEngine — wires classification, visibility, dispatch and history.

Stores and transports are injected; ``AlertEngine.from_redis`` builds
the default Redis-backed wiring.  Every delivery goes through
``VisibilityFilter.recipients`` and every privileged read through
``VisibilityFilter.require_role``.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from redis.asyncio import Redis  # type: ignore[import-untyped]

from alertgate.audit import AuditAction
from alertgate.audit import AuditEntry
from alertgate.audit import AuditFilter
from alertgate.audit import AuditHealth
from alertgate.audit import AuditLogger
from alertgate.channels import EmailTransport
from alertgate.channels import LocalNotifier
from alertgate.channels import LoggingLocalNotifier
from alertgate.channels import NoopEmailTransport
from alertgate.channels import NoopPushTransport
from alertgate.channels import PushTransport
from alertgate.config import AuditConfig
from alertgate.config import DedupConfig
from alertgate.config import DispatchConfig
from alertgate.config import HistoryConfig
from alertgate.engine import Dispatcher
from alertgate.engine import DuplicateSuppressor
from alertgate.engine import EventClassifier
from alertgate.engine import RateLimiter
from alertgate.engine import VisibilityFilter
from alertgate.errors import EventValidationError
from alertgate.errors import RecordNotFound
from alertgate.history import AcknowledgeResult
from alertgate.history import HistoryStore
from alertgate.identity import IdentityDirectory
from alertgate.identity import RedisIdentityDirectory
from alertgate.models.domain import AlertPreference
from alertgate.models.domain import AlertRecord
from alertgate.models.domain import RawEvent
from alertgate.models.domain import Role
from alertgate.models.schemas import SubmitEventResult
from alertgate.preferences import PreferenceStore
from alertgate.roles import RoleResolver

logger = logging.getLogger(__name__)

EVENT_SOURCE_ACTOR = "alertgate.event_source"


def _validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0] if exc.errors() else {}
    return str(err.get("msg", "Invalid input"))


class AlertEngine:
    """Facade exposing the engine operations to collaborators."""

    def __init__(
        self,
        *,
        directory: IdentityDirectory,
        preferences: PreferenceStore,
        history: HistoryStore,
        dispatcher: Dispatcher,
        audit_logger: AuditLogger,
        dedup: DuplicateSuppressor | None = None,
        classifier: EventClassifier | None = None,
    ) -> None:
        self.directory = directory
        self.preferences = preferences
        self.history = history
        self.dispatcher = dispatcher
        self.audit_logger = audit_logger
        self.dedup = dedup
        self.classifier = classifier or EventClassifier()
        self.visibility = VisibilityFilter(RoleResolver(directory), preferences)

    @classmethod
    def from_redis(
        cls,
        redis: Redis,
        *,
        directory: IdentityDirectory | None = None,
        push: PushTransport | None = None,
        email: EmailTransport | None = None,
        local: LocalNotifier | None = None,
        rate_limiter: RateLimiter | None = None,
        dispatch_config: DispatchConfig | None = None,
        history_config: HistoryConfig | None = None,
        dedup_config: DedupConfig | None = None,
        audit_config: AuditConfig | None = None,
    ) -> AlertEngine:
        """Build an engine whose stores all live in *redis*."""
        audit_logger = AuditLogger(audit_config or AuditConfig())
        directory = directory or RedisIdentityDirectory(redis)
        history = HistoryStore(redis, history_config)
        dispatcher = Dispatcher(
            rate_limiter=rate_limiter or RateLimiter(),
            push=push or NoopPushTransport(),
            email=email or NoopEmailTransport(),
            local=local or LoggingLocalNotifier(),
            directory=directory,
            history=history,
            audit_logger=audit_logger,
            config=dispatch_config,
        )
        return cls(
            directory=directory,
            preferences=PreferenceStore(redis, audit_logger=audit_logger),
            history=history,
            dispatcher=dispatcher,
            audit_logger=audit_logger,
            dedup=DuplicateSuppressor(redis, dedup_config),
        )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def submit_event(
        self,
        raw_event: RawEvent | dict,
        candidate_user_ids: list[str] | None = None,
    ) -> SubmitEventResult:
        """Classify, filter and dispatch one raw event.

        Candidates default to every user known to the identity directory.
        Malformed events are rejected before anything is written.
        """
        try:
            raw = (
                raw_event
                if isinstance(raw_event, RawEvent)
                else RawEvent.model_validate(raw_event)
            )
        except ValidationError as exc:
            return await self._reject_event(None, _validation_message(exc))

        try:
            alert = self.classifier.classify(raw)
        except EventValidationError as exc:
            return await self._reject_event(raw, str(exc))

        if self.dedup is not None:
            existing_id = await self.dedup.claim(alert.fingerprint, alert.id)
            if existing_id is not None:
                logger.info(
                    "Suppressed duplicate event type=%s (original alert %s)",
                    alert.type,
                    existing_id,
                )
                return SubmitEventResult(
                    accepted=False,
                    status="rejected",
                    alert_id=existing_id,
                    reason="duplicate",
                    error_code="duplicate",
                )

        if candidate_user_ids is None:
            candidate_user_ids = await self.directory.user_ids()
        recipients = await self.visibility.recipients(alert, candidate_user_ids)
        report = await self.dispatcher.dispatch(alert, recipients)
        logger.info(
            "Dispatched alert %s (%s/%s, priority=%d) to %d recipient(s)",
            alert.id,
            alert.category,
            alert.severity.value,
            alert.priority_score,
            len(recipients),
        )
        return SubmitEventResult(
            accepted=True,
            alert_id=alert.id,
            priority_score=alert.priority_score,
            recipients=[recipient.user_id for recipient in recipients],
            report=report,
        )

    async def _reject_event(self, raw: RawEvent | None, reason: str) -> SubmitEventResult:
        await self.audit_logger.log(
            AuditEntry(
                actor_id=(raw.source if raw and raw.source else EVENT_SOURCE_ACTOR),
                action=AuditAction.EVENT_REJECTED,
                target=(raw.event_id if raw and raw.event_id else "unknown"),
                outcome="rejected",
                details={"reason": reason},
            )
        )
        return SubmitEventResult(
            accepted=False,
            status="rejected",
            reason=reason,
            error_code="validation_error",
        )

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def get_preferences(self, user_id: str) -> AlertPreference:
        return await self.preferences.get(user_id)

    async def set_preferences(
        self,
        user_id: str,
        prefs: AlertPreference,
        *,
        actor_id: str | None = None,
    ) -> AlertPreference:
        """Replace *user_id*'s preference; another user's requires admin."""
        await self._require_self_or_admin(actor_id, user_id)
        return await self.preferences.set(user_id, prefs, actor_id=actor_id)

    async def reset_preferences(
        self,
        user_id: str,
        *,
        actor_id: str | None = None,
    ) -> AlertPreference:
        await self._require_self_or_admin(actor_id, user_id)
        return await self.preferences.reset(user_id, actor_id=actor_id)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def list_history(
        self,
        user_id: str,
        limit: int = 50,
        *,
        actor_id: str | None = None,
    ) -> list[AlertRecord]:
        """Return *user_id*'s records, newest first.

        Records whose category the owner's current role may not view are
        left out.  Reading another user's history requires admin.
        """
        await self._require_self_or_admin(actor_id, user_id)
        records = await self.history.list(user_id, limit)
        return await self.visibility.visible_records(user_id, records)

    async def unacknowledged_count(
        self,
        user_id: str,
        *,
        actor_id: str | None = None,
    ) -> int:
        await self._require_self_or_admin(actor_id, user_id)
        records = await self.history.list(user_id, self.history.config.retention_cap)
        visible = await self.visibility.visible_records(user_id, records)
        return sum(1 for record in visible if not record.acknowledged)

    async def acknowledge(
        self,
        record_id: str,
        *,
        actor_id: str | None = None,
    ) -> AcknowledgeResult:
        """Acknowledge one record; only a state change is audited.

        A record hidden from its owner by the visibility rules is reported
        as not found.
        """
        record = await self.history.get(record_id)
        if record is None or not await self.visibility.can_view_record(record):
            raise RecordNotFound(record_id)
        await self._require_self_or_admin(actor_id, record.user_id)
        result = await self.history.acknowledge(record_id)
        if result.changed:
            await self.audit_logger.log(
                AuditEntry(
                    actor_id=actor_id or result.record.user_id,
                    action=AuditAction.ACKNOWLEDGE,
                    target=record_id,
                    outcome="acknowledged",
                    details={"alert_id": result.record.alert_id},
                )
            )
        return result

    async def acknowledge_all(
        self,
        user_id: str,
        *,
        actor_id: str | None = None,
    ) -> int:
        await self._require_self_or_admin(actor_id, user_id)
        count = await self.history.acknowledge_all(user_id)
        await self.audit_logger.log(
            AuditEntry(
                actor_id=actor_id or user_id,
                action=AuditAction.ACKNOWLEDGE_ALL,
                target=user_id,
                outcome="acknowledged" if count else "no_op",
                details={"count": count},
            )
        )
        return count

    async def clear_history(
        self,
        user_id: str,
        *,
        actor_id: str | None = None,
    ) -> int:
        """Delete the user's acknowledged records."""
        await self._require_self_or_admin(actor_id, user_id)
        count = await self.history.clear_acknowledged(user_id)
        await self.audit_logger.log(
            AuditEntry(
                actor_id=actor_id or user_id,
                action=AuditAction.CLEAR_HISTORY,
                target=user_id,
                outcome="cleared" if count else "no_op",
                details={"count": count},
            )
        )
        return count

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    async def get_audit_trail(
        self,
        actor_id: str,
        audit_filter: AuditFilter | None = None,
    ) -> list[AuditEntry]:
        """Return audit entries; admin only."""
        await self.visibility.require_role(actor_id, Role.admin)
        return await self.audit_logger.read_entries(audit_filter)

    async def assign_role(
        self,
        actor_id: str,
        user_id: str,
        role: Role,
        *,
        email: str | None = None,
    ) -> Role | None:
        """Assign *role* to *user_id*; admin only.  Returns the previous role."""
        await self.visibility.require_role(actor_id, Role.admin)
        previous = await self.directory.assign(user_id, role, email=email)
        await self.audit_logger.log(
            AuditEntry(
                actor_id=actor_id,
                action=AuditAction.ROLE_CHANGE,
                target=user_id,
                outcome="success",
                details={
                    "previous_role": previous.value if previous else None,
                    "new_role": role.value,
                },
            )
        )
        return previous

    def audit_health(self) -> AuditHealth:
        return self.audit_logger.health()

    async def _require_self_or_admin(self, actor_id: str | None, user_id: str) -> None:
        if actor_id is None or actor_id == user_id:
            return
        await self.visibility.require_role(actor_id, Role.admin)
