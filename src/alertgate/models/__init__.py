"""Models domain — shared data models."""

from alertgate.models.domain import Alert
from alertgate.models.domain import AlertPreference
from alertgate.models.domain import AlertRecord
from alertgate.models.domain import Channel
from alertgate.models.domain import ChannelDelivery
from alertgate.models.domain import ChannelToggles
from alertgate.models.domain import DeliveryStatus
from alertgate.models.domain import DispatchReport
from alertgate.models.domain import RawEvent
from alertgate.models.domain import Role
from alertgate.models.domain import Severity

__all__ = [
    "Alert",
    "AlertPreference",
    "AlertRecord",
    "Channel",
    "ChannelDelivery",
    "ChannelToggles",
    "DeliveryStatus",
    "DispatchReport",
    "RawEvent",
    "Role",
    "Severity",
]
