"""Identity directories — the source of roles, contact addresses and users.

User hashes are stored at ``alertgate:user:{id}`` with ``role`` and
``email`` fields.  The set ``alertgate:users`` lists every known user
and is the default candidate pool for a new alert.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol
from typing import runtime_checkable

from redis.asyncio import Redis  # type: ignore[import-untyped]

from alertgate.models.domain import Role

logger = logging.getLogger(__name__)

_PREFIX = "alertgate"
_USER_KEY = f"{_PREFIX}:user"
_USERS_KEY = f"{_PREFIX}:users"


@runtime_checkable
class IdentityDirectory(Protocol):
    """Protocol for the external identity/role source."""

    async def role(self, user_id: str) -> Role | None: ...

    async def email(self, user_id: str) -> str | None: ...

    async def user_ids(self) -> list[str]: ...

    async def assign(
        self,
        user_id: str,
        role: Role,
        *,
        email: str | None = None,
    ) -> Role | None:
        """Assign *role* to *user_id* and return the previous role."""
        ...


def _decode(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    return value.decode() if isinstance(value, bytes) else value


def _parse_role(raw: str | None, user_id: str) -> Role | None:
    if raw is None:
        return None
    try:
        return Role(raw.strip().lower())
    except ValueError:
        logger.warning("Ignoring unknown role %r for user %s", raw, user_id)
        return None


class RedisIdentityDirectory:
    """Redis-backed identity directory."""

    def __init__(self, redis: Redis) -> None:
        self._redis = redis

    async def role(self, user_id: str) -> Role | None:
        raw = await self._redis.hget(f"{_USER_KEY}:{user_id}", "role")
        return _parse_role(_decode(raw), user_id)

    async def email(self, user_id: str) -> str | None:
        raw = await self._redis.hget(f"{_USER_KEY}:{user_id}", "email")
        return _decode(raw)

    async def user_ids(self) -> list[str]:
        members = await self._redis.smembers(_USERS_KEY)
        return sorted(m for m in (_decode(raw) for raw in members) if m)

    async def assign(
        self,
        user_id: str,
        role: Role,
        *,
        email: str | None = None,
    ) -> Role | None:
        previous = await self.role(user_id)
        mapping = {"role": role.value}
        if email is not None:
            mapping["email"] = email
        pipe = self._redis.pipeline()
        pipe.hset(f"{_USER_KEY}:{user_id}", mapping=mapping)
        pipe.sadd(_USERS_KEY, user_id)
        await pipe.execute()
        return previous


class StaticIdentityDirectory:
    """In-memory identity directory, for embedding and tests."""

    def __init__(
        self,
        roles: Mapping[str, Role] | None = None,
        emails: Mapping[str, str] | None = None,
    ) -> None:
        self._roles: dict[str, Role] = dict(roles or {})
        self._emails: dict[str, str] = dict(emails or {})

    async def role(self, user_id: str) -> Role | None:
        return self._roles.get(user_id)

    async def email(self, user_id: str) -> str | None:
        return self._emails.get(user_id)

    async def user_ids(self) -> list[str]:
        return sorted(set(self._roles) | set(self._emails))

    async def assign(
        self,
        user_id: str,
        role: Role,
        *,
        email: str | None = None,
    ) -> Role | None:
        previous = self._roles.get(user_id)
        self._roles[user_id] = role
        if email is not None:
            self._emails[user_id] = email
        return previous
