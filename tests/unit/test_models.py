"""Unit tests for domain models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from alertgate.models import Alert
from alertgate.models import AlertPreference
from alertgate.models import AlertRecord
from alertgate.models import Channel
from alertgate.models import ChannelDelivery
from alertgate.models import ChannelToggles
from alertgate.models import DeliveryStatus
from alertgate.models import DispatchReport
from alertgate.models import RawEvent
from alertgate.models import Role
from alertgate.models import Severity


def _alert(**overrides) -> Alert:
    fields = {
        "event_id": "evt_1",
        "type": "brute_force",
        "category": "security",
        "severity": Severity.high,
        "priority_score": 35,
        "fingerprint": "fp",
    }
    fields.update(overrides)
    return Alert(**fields)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class TestEnums:
    def test_severity_ordering(self):
        assert Severity.critical.at_least(Severity.high)
        assert Severity.medium.at_least(Severity.medium)
        assert not Severity.low.at_least(Severity.medium)

    def test_role_ranks_are_total_order(self):
        assert Role.admin.rank > Role.analyst.rank > Role.viewer.rank

    def test_local_channels(self):
        assert Channel.sound.is_local
        assert Channel.visual.is_local
        assert not Channel.push.is_local
        assert not Channel.email.is_local


# ---------------------------------------------------------------------------
# Events and alerts
# ---------------------------------------------------------------------------


class TestRawEvent:
    def test_all_fields_optional(self):
        raw = RawEvent()
        assert raw.type is None
        assert raw.metadata == {}

    def test_unknown_fields_ignored(self):
        raw = RawEvent.model_validate({"type": "x", "vendor_blob": {"a": 1}})
        assert raw.type == "x"
        assert not hasattr(raw, "vendor_blob")


class TestAlert:
    def test_id_prefix(self):
        assert _alert().id.startswith("alert_")

    def test_frozen(self):
        alert = _alert()
        with pytest.raises(ValidationError):
            alert.severity = Severity.low  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Preferences
# ---------------------------------------------------------------------------


class TestPreferences:
    def test_default_enables_everything(self):
        pref = AlertPreference.default("u1")
        assert pref.min_severity == Severity.low
        assert pref.channels.enabled_channels() == list(Channel)
        assert pref.updated_at == 0.0

    def test_enabled_channels_keep_enum_order(self):
        toggles = ChannelToggles(sound=False, visual=True, push=False, email=True)
        assert toggles.enabled_channels() == [Channel.visual, Channel.email]


# ---------------------------------------------------------------------------
# Dispatch report and records
# ---------------------------------------------------------------------------


class TestDispatchReport:
    def test_status_for_and_grouping(self):
        report = DispatchReport(
            alert_id="alert_x",
            deliveries=[
                ChannelDelivery(user_id="a", channel=Channel.push, status=DeliveryStatus.delivered, attempts=1),
                ChannelDelivery(user_id="a", channel=Channel.email, status=DeliveryStatus.failed, attempts=3),
                ChannelDelivery(user_id="b", channel=Channel.push, status=DeliveryStatus.rate_limited),
            ],
        )
        assert report.status_for("a", Channel.email) == DeliveryStatus.failed
        assert report.status_for("b", Channel.email) is None
        assert set(report.by_user()) == {"a", "b"}
        assert report.delivered_count == 1


class TestAlertRecord:
    def test_from_deliveries_keeps_only_own_pairs(self):
        alert = _alert()
        record = AlertRecord.from_deliveries(
            alert,
            "a",
            [
                ChannelDelivery(user_id="a", channel=Channel.push, status=DeliveryStatus.delivered),
                ChannelDelivery(user_id="a", channel=Channel.email, status=DeliveryStatus.timed_out),
                ChannelDelivery(user_id="b", channel=Channel.sound, status=DeliveryStatus.delivered),
            ],
        )
        assert record.id.startswith("rec_")
        assert record.alert_id == alert.id
        assert record.delivered == {Channel.push: True, Channel.email: False}
        assert record.outcomes[Channel.email] == DeliveryStatus.timed_out
        assert record.acknowledged is False

    def test_alert_id_must_match_snapshot(self):
        with pytest.raises(ValidationError, match="alert_id"):
            AlertRecord(alert_id="alert_other", user_id="a", alert=_alert())

    def test_acknowledged_at_requires_acknowledged(self):
        alert = _alert()
        with pytest.raises(ValidationError, match="acknowledged_at"):
            AlertRecord(
                alert_id=alert.id,
                user_id="a",
                alert=alert,
                acknowledged=False,
                acknowledged_at=123.0,
            )

    def test_json_roundtrip_preserves_channel_keys(self):
        alert = _alert()
        record = AlertRecord.from_deliveries(
            alert,
            "a",
            [ChannelDelivery(user_id="a", channel=Channel.push, status=DeliveryStatus.delivered)],
        )
        restored = AlertRecord.model_validate_json(record.model_dump_json())
        assert restored == record
