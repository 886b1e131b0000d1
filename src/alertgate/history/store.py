"""Redis-backed alert history.

Records are stored as JSON strings keyed by ``alertgate:record:{id}``.
A per-user sorted set ``alertgate:history:{user_id}`` tracks insertion
order; its score comes from the global counter ``alertgate:history:seq``
so ordering never depends on clock resolution.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from redis.asyncio import Redis  # type: ignore[import-untyped]

from alertgate.config import HistoryConfig
from alertgate.errors import RecordNotFound
from alertgate.models.domain import Alert
from alertgate.models.domain import AlertRecord
from alertgate.models.domain import ChannelDelivery

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Key prefixes
# ---------------------------------------------------------------------------

_PREFIX = "alertgate"
_RECORD_KEY = f"{_PREFIX}:record"
_HISTORY_KEY = f"{_PREFIX}:history"
_SEQ_KEY = f"{_PREFIX}:history:seq"


def _decode(raw: bytes | str) -> str:
    return raw.decode() if isinstance(raw, bytes) else raw


@dataclass(frozen=True)
class AcknowledgeResult:
    """Outcome of acknowledging one record."""

    record: AlertRecord
    changed: bool


class HistoryStore:
    """Bounded, per-user ledger of dispatched alerts.

    Writes for one user are serialized with a per-user ``asyncio.Lock`` so
    that retention eviction always sees a consistent count.  Different
    users never wait on each other.  A user's lock is dropped once no task
    holds or awaits it, so the lock map only tracks users with writes in
    flight.
    """

    def __init__(self, redis: Redis, config: HistoryConfig | None = None) -> None:
        self._redis = redis
        self.config = config or HistoryConfig()
        self._user_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = self._user_locks[user_id] = asyncio.Lock()
        self._lock_users[user_id] = self._lock_users.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[user_id] -= 1
            if not self._lock_users[user_id]:
                del self._lock_users[user_id]
                del self._user_locks[user_id]

    # -- write --

    async def record(
        self,
        alert: Alert,
        user_id: str,
        deliveries: list[ChannelDelivery],
    ) -> AlertRecord:
        """Insert a record for *user_id* and evict past the retention cap."""
        record = AlertRecord.from_deliveries(alert, user_id, deliveries)
        async with self._user_lock(user_id):
            seq = await self._redis.incr(_SEQ_KEY)
            pipe = self._redis.pipeline()
            pipe.set(f"{_RECORD_KEY}:{record.id}", record.model_dump_json())
            pipe.zadd(f"{_HISTORY_KEY}:{user_id}", {record.id: seq})
            await pipe.execute()
            await self._evict_if_needed(user_id)
        return record

    async def acknowledge(self, record_id: str) -> AcknowledgeResult:
        """Mark a record acknowledged; repeating the call is a no-op."""
        record = await self.get(record_id)
        if record is None:
            raise RecordNotFound(record_id)

        async with self._user_lock(record.user_id):
            # Re-read under the lock so concurrent acks agree on the outcome
            current = await self.get(record_id)
            if current is None:
                raise RecordNotFound(record_id)
            if current.acknowledged:
                return AcknowledgeResult(record=current, changed=False)
            updated = current.model_copy(
                update={"acknowledged": True, "acknowledged_at": time.time()}
            )
            await self._redis.set(
                f"{_RECORD_KEY}:{record_id}", updated.model_dump_json()
            )
        return AcknowledgeResult(record=updated, changed=True)

    async def acknowledge_all(self, user_id: str) -> int:
        """Acknowledge every pending record of *user_id*; return how many changed."""
        async with self._user_lock(user_id):
            records = await self._load_all(user_id)
            now = time.time()
            pending = [r for r in records if not r.acknowledged]
            if not pending:
                return 0
            pipe = self._redis.pipeline()
            for record in pending:
                updated = record.model_copy(
                    update={"acknowledged": True, "acknowledged_at": now}
                )
                pipe.set(f"{_RECORD_KEY}:{record.id}", updated.model_dump_json())
            await pipe.execute()
        return len(pending)

    async def clear_acknowledged(self, user_id: str) -> int:
        """Delete acknowledged records of *user_id*; return how many were removed."""
        async with self._user_lock(user_id):
            records = await self._load_all(user_id)
            done = [r.id for r in records if r.acknowledged]
            if done:
                await self._delete_records(user_id, done)
        return len(done)

    # -- read --

    async def get(self, record_id: str) -> AlertRecord | None:
        """Retrieve a record by ID, or ``None`` if missing."""
        data = await self._redis.get(f"{_RECORD_KEY}:{record_id}")
        if data is None:
            return None
        return AlertRecord.model_validate_json(data)

    async def list(self, user_id: str, limit: int = 50) -> list[AlertRecord]:
        """Return up to *limit* records for *user_id*, newest first.

        The result is a snapshot; a later call may reflect new writes.
        """
        if limit <= 0:
            return []
        ids = await self._redis.zrevrange(f"{_HISTORY_KEY}:{user_id}", 0, limit - 1)
        return await self._fetch(user_id, [_decode(raw) for raw in ids])

    async def count(self, user_id: str) -> int:
        return await self._redis.zcard(f"{_HISTORY_KEY}:{user_id}")

    async def unacknowledged_count(self, user_id: str) -> int:
        records = await self._load_all(user_id)
        return sum(1 for r in records if not r.acknowledged)

    # -- internal --

    async def _load_all(self, user_id: str) -> list[AlertRecord]:
        ids = await self._redis.zrevrange(f"{_HISTORY_KEY}:{user_id}", 0, -1)
        return await self._fetch(user_id, [_decode(raw) for raw in ids])

    async def _fetch(self, user_id: str, record_ids: list[str]) -> list[AlertRecord]:
        if not record_ids:
            return []
        raw_results = await self._redis.mget(
            [f"{_RECORD_KEY}:{rid}" for rid in record_ids]
        )

        stale_ids: list[str] = []
        results: list[AlertRecord] = []
        for rid, raw in zip(record_ids, raw_results):
            if raw is None:
                stale_ids.append(rid)
            else:
                results.append(AlertRecord.model_validate_json(raw))

        if stale_ids:
            await self._redis.zrem(f"{_HISTORY_KEY}:{user_id}", *stale_ids)
        return results

    async def _delete_records(self, user_id: str, record_ids: list[str]) -> None:
        pipe = self._redis.pipeline()
        for rid in record_ids:
            pipe.delete(f"{_RECORD_KEY}:{rid}")
        pipe.zrem(f"{_HISTORY_KEY}:{user_id}", *record_ids)
        await pipe.execute()

    async def _evict_if_needed(self, user_id: str) -> None:
        """Evict the oldest records if the user is over the retention cap."""
        current = await self.count(user_id)
        cap = self.config.retention_cap
        if current <= cap:
            return

        excess = current - cap
        oldest = await self._redis.zrange(f"{_HISTORY_KEY}:{user_id}", 0, excess - 1)
        evicted = [_decode(raw) for raw in oldest]
        await self._delete_records(user_id, evicted)
        logger.debug("Evicted %d history records for user %s", len(evicted), user_id)
