"""Async JSONL audit logger."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from pydantic import ValidationError

from alertgate.audit.schemas import AuditEntry
from alertgate.audit.schemas import AuditFilter
from alertgate.config import AuditConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditHealth:
    """Health signal of the audit sink."""

    healthy: bool
    failure_count: int = 0
    last_error: str | None = None


class AuditLogger:
    """Append-only JSONL audit log with async I/O.

    Uses ``asyncio.to_thread`` for file operations to avoid blocking
    the event loop, guarded by an ``asyncio.Lock`` for serialization.

    ``log`` never raises into the caller: sink failures are counted and
    reported through ``health()`` instead.
    """

    def __init__(self, config: AuditConfig) -> None:
        self.config = config
        self._lock = asyncio.Lock()
        self._failure_count = 0
        self._last_error: str | None = None
        self._healthy = True

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def log(self, entry: AuditEntry) -> None:
        """Append *entry* as a single JSON line to the audit file."""
        if not self.config.enabled:
            return
        line = entry.model_dump_json() + "\n"
        try:
            async with self._lock:
                await asyncio.to_thread(
                    partial(self._append, self.config.file_path, line),
                )
        except OSError as exc:
            self._healthy = False
            self._failure_count += 1
            self._last_error = str(exc)
            logger.error(
                "Audit sink unavailable, dropped %s entry for %s: %s",
                entry.action.value,
                entry.target,
                exc,
            )
            return
        self._healthy = True

    @staticmethod
    def _append(path: str, line: str) -> None:
        with open(path, "a") as fh:
            fh.write(line)

    def health(self) -> AuditHealth:
        """Return the current sink health; unhealthy after a failed write."""
        return AuditHealth(
            healthy=self._healthy,
            failure_count=self._failure_count,
            last_error=self._last_error,
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def read_entries(
        self,
        audit_filter: AuditFilter | None = None,
    ) -> list[AuditEntry]:
        """Read entries back from the audit file, oldest first, optionally filtered.

        When the filter carries a ``limit`` the most recent matches are kept.
        """
        path = Path(self.config.file_path)
        if not path.exists():
            return []

        async with self._lock:
            raw = await asyncio.to_thread(path.read_text)
        entries: list[AuditEntry] = []
        for line_no, line in enumerate(raw.strip().splitlines(), start=1):
            try:
                entry = AuditEntry.model_validate_json(line)
            except ValidationError:
                logger.warning(
                    "Skipping malformed audit entry line %d in %s",
                    line_no,
                    path,
                )
                continue
            if audit_filter is not None and not audit_filter.matches(entry):
                continue
            entries.append(entry)
        if audit_filter is not None and audit_filter.limit is not None:
            entries = entries[-audit_filter.limit :]
        return entries
