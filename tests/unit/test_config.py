"""Unit tests for configuration dataclasses."""

from __future__ import annotations

import dataclasses

import pytest

from alertgate.config import AuditConfig
from alertgate.config import DedupConfig
from alertgate.config import DispatchConfig
from alertgate.config import EmailConfig
from alertgate.config import HistoryConfig
from alertgate.config import PushConfig


class TestDispatchConfig:
    def test_defaults(self):
        cfg = DispatchConfig()
        assert cfg.max_retries == 2
        assert cfg.send_timeout_seconds == 5.0
        assert cfg.rate_limit_max_requests == 30
        assert cfg.rate_limit_window_seconds == 60.0

    def test_backoff_delays_are_exponential(self):
        assert DispatchConfig().backoff_delays() == pytest.approx([0.2, 0.8])

    def test_no_retries_means_no_delays(self):
        assert DispatchConfig(max_retries=0).backoff_delays() == []

    def test_derived_overall_timeout_covers_retries(self):
        cfg = DispatchConfig()
        # 3 attempts * 5s + 0.2 + 0.8 + 1s slack
        assert cfg.effective_overall_timeout() == pytest.approx(17.0)

    def test_explicit_overall_timeout_wins(self):
        assert DispatchConfig(overall_timeout_seconds=2.5).effective_overall_timeout() == 2.5

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DispatchConfig().max_retries = 5  # type: ignore[misc]


class TestOtherConfigs:
    def test_history_retention_default(self):
        assert HistoryConfig().retention_cap == 200

    def test_dedup_defaults(self):
        cfg = DedupConfig()
        assert cfg.enabled is True
        assert cfg.window_seconds == 300

    def test_audit_defaults(self):
        cfg = AuditConfig()
        assert cfg.file_path == "alertgate_audit.jsonl"
        assert cfg.enabled is True

    def test_transport_defaults_are_noop(self):
        assert PushConfig().provider == "noop"
        assert EmailConfig().provider == "noop"
        assert EmailConfig().smtp_port == 587
