"""Audit subsystem — async JSONL action logging."""

from alertgate.audit.schemas import AuditAction
from alertgate.audit.schemas import AuditEntry
from alertgate.audit.schemas import AuditFilter
from alertgate.audit.store import AuditHealth
from alertgate.audit.store import AuditLogger

__all__ = [
    "AuditAction",
    "AuditEntry",
    "AuditFilter",
    "AuditHealth",
    "AuditLogger",
]
