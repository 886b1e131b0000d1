"""Unit test fixtures — engine wiring, recording transports and the MCP client."""

from __future__ import annotations

import pytest
from fastmcp import Client

from alertgate.config import AuditConfig
from alertgate.config import DedupConfig
from alertgate.config import DispatchConfig
from alertgate.identity import StaticIdentityDirectory
from alertgate.models.domain import Role
from alertgate.service import AlertEngine
from tests.helpers.fakes import RecordingEmail
from tests.helpers.fakes import RecordingLocal
from tests.helpers.fakes import RecordingPush


@pytest.fixture()
def audit_config(tmp_path) -> AuditConfig:
    return AuditConfig(file_path=str(tmp_path / "audit.jsonl"))


@pytest.fixture()
def directory() -> StaticIdentityDirectory:
    return StaticIdentityDirectory(
        roles={
            "alice": Role.admin,
            "bob": Role.analyst,
            "carol": Role.viewer,
        },
        emails={
            "alice": "alice@example.com",
            "bob": "bob@example.com",
            "carol": "carol@example.com",
        },
    )


@pytest.fixture()
def push() -> RecordingPush:
    return RecordingPush()


@pytest.fixture()
def email() -> RecordingEmail:
    return RecordingEmail()


@pytest.fixture()
def local() -> RecordingLocal:
    return RecordingLocal()


@pytest.fixture()
def engine(redis_client, directory, push, email, local, audit_config) -> AlertEngine:
    return AlertEngine.from_redis(
        redis_client,
        directory=directory,
        push=push,
        email=email,
        local=local,
        dispatch_config=DispatchConfig(backoff_base_seconds=0.0),
        dedup_config=DedupConfig(enabled=True, window_seconds=300),
        audit_config=audit_config,
    )


@pytest.fixture()
async def mcp_client(redis_client, directory, push, email, local, audit_config):
    """Yield a FastMCP Client wired to the AlertGate server."""
    from alertgate.server import configure
    from alertgate.server import mcp
    from alertgate.server import shutdown

    await configure(
        redis_client=redis_client,
        directory=directory,
        push=push,
        email=email,
        local=local,
        dispatch_config=DispatchConfig(backoff_base_seconds=0.0),
        audit_config=audit_config,
    )

    async with Client(mcp) as client:
        yield client

    await shutdown()
