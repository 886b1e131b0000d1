"""Application configuration dataclasses.

Frozen dataclasses with sensible defaults for each subsystem.
No env-var loading or YAML parsing — just plain defaults that can
be overridden at construction time.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DispatchConfig:
    """Retry, timeout and rate-limit settings used by the dispatcher."""

    # Retry policy for external channels (push, email)
    max_retries: int = 2
    backoff_base_seconds: float = 0.2
    backoff_factor: float = 4.0
    send_timeout_seconds: float = 5.0
    # ``None`` derives the deadline from the retry policy
    overall_timeout_seconds: float | None = None
    # Storm suppression per (endpoint, user)
    rate_limit_endpoint: str = "dispatch"
    rate_limit_max_requests: int = 30
    rate_limit_window_seconds: float = 60.0

    def backoff_delays(self) -> list[float]:
        """Return the sleep before each retry: 0.2s, 0.8s with defaults."""
        return [
            self.backoff_base_seconds * (self.backoff_factor**attempt)
            for attempt in range(self.max_retries)
        ]

    def effective_overall_timeout(self) -> float:
        """Upper bound on one ``dispatch`` call, including retries."""
        if self.overall_timeout_seconds is not None:
            return self.overall_timeout_seconds
        attempts = self.max_retries + 1
        return attempts * self.send_timeout_seconds + sum(self.backoff_delays()) + 1.0


@dataclass(frozen=True)
class HistoryConfig:
    """Retention settings for the per-user alert history."""

    retention_cap: int = 200


@dataclass(frozen=True)
class DedupConfig:
    """Suppression window for identical inbound events."""

    enabled: bool = True
    window_seconds: int = 300


@dataclass(frozen=True)
class AuditConfig:
    """Settings for the JSONL audit logger."""

    file_path: str = "alertgate_audit.jsonl"
    enabled: bool = True


@dataclass(frozen=True)
class PushConfig:
    """Push transport settings."""

    provider: str = "noop"
    endpoint_url: str | None = None
    api_key: str | None = None
    timeout_seconds: float = 5.0


@dataclass(frozen=True)
class EmailConfig:
    """SMTP transport settings."""

    provider: str = "noop"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    username: str | None = None
    password: str | None = None
    sender: str = "alerts@alertgate.local"
    use_tls: bool = True
    timeout_seconds: float = 5.0
