"""Role resolution and the category capability table."""

from __future__ import annotations

import logging

from alertgate.errors import RoleNotFound
from alertgate.identity import IdentityDirectory
from alertgate.models.domain import Role

logger = logging.getLogger(__name__)

_ELEVATED_CATEGORIES = frozenset({"security", "identity", "compliance", "informational"})

_ROLE_CATEGORIES: dict[Role, frozenset[str]] = {
    Role.viewer: frozenset({"informational"}),
    Role.analyst: _ELEVATED_CATEGORIES,
    Role.admin: _ELEVATED_CATEGORIES,
}

KNOWN_CATEGORIES: frozenset[str] = _ELEVATED_CATEGORIES

DEFAULT_ROLE = Role.viewer


def can_view(role: Role, category: str) -> bool:
    """Return whether *role* may receive alerts of *category*.

    Categories outside the table are visible to admins only.
    """
    normalized = category.strip().lower()
    if normalized not in KNOWN_CATEGORIES:
        return role == Role.admin
    return normalized in _ROLE_CATEGORIES[role]


def has_role(actual: Role, required: Role) -> bool:
    """Admin implies analyst implies viewer."""
    return actual.rank >= required.rank


class RoleResolver:
    """Read-only lookup of a user's role from the identity directory.

    Nothing is cached between calls; the directory is the single source
    of truth.
    """

    def __init__(self, directory: IdentityDirectory) -> None:
        self._directory = directory

    async def resolve_role(self, user_id: str) -> Role:
        """Return the assigned role or raise ``RoleNotFound``."""
        role = await self._directory.role(user_id)
        if role is None:
            raise RoleNotFound(user_id)
        return role

    async def resolve_role_or_default(self, user_id: str) -> Role:
        """Return the assigned role, falling back to ``viewer``."""
        try:
            return await self.resolve_role(user_id)
        except RoleNotFound:
            logger.debug("No role for user %s, defaulting to %s", user_id, DEFAULT_ROLE.value)
            return DEFAULT_ROLE
