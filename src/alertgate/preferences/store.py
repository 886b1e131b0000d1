"""Redis-backed alert preference store.

Each user's preference is one JSON string keyed by
``alertgate:prefs:{user_id}``.  Writes replace the whole record; there
is no field-level merge.
"""

from __future__ import annotations

import logging
import time

from redis.asyncio import Redis  # type: ignore[import-untyped]

from alertgate.audit import AuditAction
from alertgate.audit import AuditEntry
from alertgate.audit import AuditLogger
from alertgate.models.domain import AlertPreference

logger = logging.getLogger(__name__)

_PREFS_KEY = "alertgate:prefs"


class PreferenceStore:
    """Per-user channel and severity preferences with audited writes."""

    def __init__(
        self,
        redis: Redis,
        *,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._redis = redis
        self._audit = audit_logger

    async def get(self, user_id: str) -> AlertPreference:
        """Return the stored preference, or the default when none is set."""
        data = await self._redis.get(f"{_PREFS_KEY}:{user_id}")
        if data is None:
            return AlertPreference.default(user_id)
        return AlertPreference.model_validate_json(data)

    async def set(
        self,
        user_id: str,
        prefs: AlertPreference,
        *,
        actor_id: str | None = None,
    ) -> AlertPreference:
        """Replace the user's preference and return the stored record."""
        previous = await self.get(user_id)
        stored = prefs.model_copy(
            update={"user_id": user_id, "updated_at": time.time()}
        )
        await self._redis.set(f"{_PREFS_KEY}:{user_id}", stored.model_dump_json())
        await self._log_change(
            user_id,
            actor_id=actor_id,
            details={
                "previous": previous.model_dump(mode="json", exclude={"user_id"}),
                "current": stored.model_dump(mode="json", exclude={"user_id"}),
            },
        )
        return stored

    async def reset(
        self,
        user_id: str,
        *,
        actor_id: str | None = None,
    ) -> AlertPreference:
        """Delete the stored preference so the defaults apply again."""
        removed = await self._redis.delete(f"{_PREFS_KEY}:{user_id}")
        await self._log_change(
            user_id,
            actor_id=actor_id,
            details={"reset": True, "had_record": bool(removed)},
        )
        return AlertPreference.default(user_id)

    async def _log_change(
        self,
        user_id: str,
        *,
        actor_id: str | None,
        details: dict,
    ) -> None:
        if self._audit is None:
            return
        await self._audit.log(
            AuditEntry(
                actor_id=actor_id or user_id,
                action=AuditAction.PREFERENCE_CHANGE,
                target=user_id,
                outcome="success",
                details=details,
            )
        )
