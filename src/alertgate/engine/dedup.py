"""Duplicate suppression for repeated inbound events."""

from __future__ import annotations

from redis.asyncio import Redis  # type: ignore[import-untyped]

from alertgate.config import DedupConfig

_DEDUP_KEY = "alertgate:dedup"


def _decode(value: bytes | str | None) -> str | None:
    if value is None:
        return None
    return value.decode() if isinstance(value, bytes) else value


class DuplicateSuppressor:
    """Remembers alert fingerprints for a fixed window using ``SET NX EX``."""

    def __init__(self, redis: Redis, config: DedupConfig | None = None) -> None:
        self._redis = redis
        self.config = config or DedupConfig()

    async def claim(self, fingerprint: str, alert_id: str) -> str | None:
        """Claim *fingerprint* for *alert_id*.

        Returns ``None`` when the claim succeeds, or the id of the alert
        that already holds the fingerprint within the window.
        """
        if not self.config.enabled:
            return None
        key = f"{_DEDUP_KEY}:{fingerprint}"
        claimed = await self._redis.set(
            key, alert_id, nx=True, ex=self.config.window_seconds
        )
        if claimed:
            return None
        existing = _decode(await self._redis.get(key))
        # Expired between SET and GET: the next event will claim it
        return existing or alert_id
