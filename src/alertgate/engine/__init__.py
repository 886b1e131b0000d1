"""Engine domain — classification, visibility, rate limiting and dispatch."""

from alertgate.engine.classifier import CATEGORY_WEIGHTS
from alertgate.engine.classifier import EventClassifier
from alertgate.engine.classifier import fingerprint
from alertgate.engine.classifier import priority_score
from alertgate.engine.classifier import SEVERITY_WEIGHTS
from alertgate.engine.dedup import DuplicateSuppressor
from alertgate.engine.dispatcher import Dispatcher
from alertgate.engine.ratelimit import RateLimiter
from alertgate.engine.ratelimit import RateLimitWindow
from alertgate.engine.visibility import Recipient
from alertgate.engine.visibility import VisibilityFilter

__all__ = [
    "CATEGORY_WEIGHTS",
    "Dispatcher",
    "DuplicateSuppressor",
    "EventClassifier",
    "RateLimitWindow",
    "RateLimiter",
    "Recipient",
    "SEVERITY_WEIGHTS",
    "VisibilityFilter",
    "fingerprint",
    "priority_score",
]
