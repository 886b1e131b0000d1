"""History domain — bounded per-user ledger of delivered alerts."""

from alertgate.history.store import AcknowledgeResult
from alertgate.history.store import HistoryStore
from alertgate.models.domain import AlertRecord

__all__ = ["AcknowledgeResult", "AlertRecord", "HistoryStore"]
