"""Visibility filter — the single policy chokepoint for delivery, history reads and privileged queries."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from alertgate.errors import PermissionDenied
from alertgate.models.domain import Alert
from alertgate.models.domain import AlertPreference
from alertgate.models.domain import AlertRecord
from alertgate.models.domain import Role
from alertgate.preferences import PreferenceStore
from alertgate.roles import can_view
from alertgate.roles import has_role
from alertgate.roles import RoleResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    """A user cleared to receive an alert, with the snapshot used to decide it."""

    user_id: str
    role: Role
    preference: AlertPreference


class VisibilityFilter:
    """Decides who may receive an alert and who may run admin queries."""

    def __init__(self, resolver: RoleResolver, preferences: PreferenceStore) -> None:
        self._resolver = resolver
        self._preferences = preferences

    async def recipients(
        self,
        alert: Alert,
        candidate_user_ids: list[str],
    ) -> list[Recipient]:
        """Return the candidates allowed to receive *alert*, in input order.

        A user is kept iff their role can view the alert's category and
        the alert's severity meets their ``min_severity``.  Users without
        a role are treated as viewers.
        """
        unique_ids = list(dict.fromkeys(candidate_user_ids))
        decisions = await asyncio.gather(
            *(self._evaluate(alert, user_id) for user_id in unique_ids)
        )
        return [recipient for recipient in decisions if recipient is not None]

    async def _evaluate(self, alert: Alert, user_id: str) -> Recipient | None:
        role = await self._resolver.resolve_role_or_default(user_id)
        if not can_view(role, alert.category):
            logger.debug(
                "alert %s hidden from %s (role=%s category=%s)",
                alert.id,
                user_id,
                role.value,
                alert.category,
            )
            return None
        preference = await self._preferences.get(user_id)
        if not alert.severity.at_least(preference.min_severity):
            logger.debug(
                "alert %s below threshold for %s (%s < %s)",
                alert.id,
                user_id,
                alert.severity.value,
                preference.min_severity.value,
            )
            return None
        return Recipient(user_id=user_id, role=role, preference=preference)

    async def require_role(self, actor_id: str, required: Role) -> Role:
        """Return the actor's role or raise ``PermissionDenied``."""
        role = await self._resolver.resolve_role_or_default(actor_id)
        if not has_role(role, required):
            raise PermissionDenied(
                f"User {actor_id!r} with role {role.value!r} lacks required role "
                f"{required.value!r}."
            )
        return role

    async def visible_records(
        self,
        user_id: str,
        records: list[AlertRecord],
    ) -> list[AlertRecord]:
        """Drop records whose category the owner's current role may not view.

        History is filtered on read, so a role downgrade hides records that
        were delivered under the earlier role.
        """
        role = await self._resolver.resolve_role_or_default(user_id)
        visible = [r for r in records if can_view(role, r.alert.category)]
        if len(visible) != len(records):
            logger.debug(
                "Hid %d history record(s) from %s (role=%s)",
                len(records) - len(visible),
                user_id,
                role.value,
            )
        return visible

    async def can_view_record(self, record: AlertRecord) -> bool:
        role = await self._resolver.resolve_role_or_default(record.user_id)
        return can_view(role, record.alert.category)
