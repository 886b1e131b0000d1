"""MCP authentication helpers.

The engine trusts the ``actor_id`` passed to its tools; this verifier
only gates who may reach the server at all.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import os

from fastmcp.server.auth import AccessToken
from fastmcp.server.auth import TokenVerifier

logger = logging.getLogger(__name__)

_DEFAULT_SCOPES = ["alertgate:all"]


class APIKeyVerifier(TokenVerifier):
    """Static bearer-token verifier for MCP requests."""

    def __init__(
        self,
        api_key: str,
        *,
        scopes: list[str] | None = None,
    ) -> None:
        normalized = api_key.strip()
        if not normalized:
            raise ValueError("api_key must be a non-empty, non-whitespace string")
        super().__init__()
        self._api_key = normalized
        self._scopes = scopes[:] if scopes else list(_DEFAULT_SCOPES)

    async def verify_token(self, token: str) -> AccessToken | None:
        """Return an access token when the provided bearer token is valid."""
        if hmac.compare_digest(token, self._api_key):
            return AccessToken(
                token=token,
                client_id="alertgate-client",
                scopes=self._scopes,
                expires_at=None,
            )

        token_fingerprint = hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]
        logger.debug(
            "Invalid MCP auth token provided (token_len=%d, token_fp=%s)",
            len(token),
            token_fingerprint,
        )
        return None


def _env_value(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    stripped = raw.strip()
    return stripped if stripped else None


def get_auth_key() -> str | None:
    """Get the static auth key from ``ALERTGATE_AUTH_KEY``."""
    return _env_value("ALERTGATE_AUTH_KEY")


def get_auth_scopes() -> list[str]:
    """Get auth scopes from the comma-separated ``ALERTGATE_AUTH_SCOPES``."""
    raw = os.getenv("ALERTGATE_AUTH_SCOPES", "")
    parsed = [scope.strip() for scope in raw.split(",") if scope.strip()]
    return parsed if parsed else list(_DEFAULT_SCOPES)


def create_mcp_auth() -> APIKeyVerifier | None:
    """Create an auth verifier when ``ALERTGATE_AUTH_KEY`` is configured."""
    api_key = get_auth_key()
    if api_key is None:
        return None
    return APIKeyVerifier(api_key, scopes=get_auth_scopes())
