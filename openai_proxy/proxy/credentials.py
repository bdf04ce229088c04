"""Per-request credential acquisition from the auth (JWT) service."""

from __future__ import annotations

import json
import logging

import httpx

from openai_proxy.core.config import GatewayConfig
from openai_proxy.errors import TokenError

logger = logging.getLogger(__name__)

# Tried in order; the first key present in the auth reply wins.
TOKEN_FIELDS = ("token", "access_token", "jwt")


def extract_token(payload: object) -> str:
    """Pull the credential out of a decoded auth reply."""
    if not isinstance(payload, dict):
        raise TokenError(f"token response is not a JSON object: {payload!r}")
    for field in TOKEN_FIELDS:
        if field in payload:
            token = payload[field]
            break
    else:
        raise TokenError(f"token response has no token field (body: {payload!r})")
    if not isinstance(token, str):
        raise TokenError(f"token field is not a string: {token!r}")
    if not token:
        raise TokenError("received an empty token")
    return token


class CredentialProvider:
    """Fetches a fresh bearer credential for every inbound call; nothing is cached."""

    def __init__(self, client: httpx.AsyncClient, cfg: GatewayConfig) -> None:
        self._client = client
        self._cfg = cfg

    def _build_request(self) -> httpx.Request:
        cfg = self._cfg
        kwargs: dict[str, object] = {}
        if cfg.auth_token_type:
            kwargs["json"] = {"token_type": cfg.auth_token_type}
        try:
            return self._client.build_request(
                cfg.auth_method,
                cfg.auth_url,
                timeout=httpx.Timeout(cfg.auth_timeout_s),
                **kwargs,  # type: ignore[arg-type]
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError, TypeError) as e:
            raise TokenError(f"failed to build token request: {e}") from e

    async def acquire(self) -> str:
        request = self._build_request()
        try:
            resp = await self._client.send(request)
        except httpx.HTTPError as e:
            logger.warning("Token request to %s failed: %s", self._cfg.auth_url, e)
            raise TokenError(f"token request failed: {e}") from e

        body = resp.content
        try:
            payload = json.loads(body)
        except ValueError as e:
            logger.warning(
                "Token response from %s is not JSON (HTTP %d)", self._cfg.auth_url, resp.status_code,
            )
            raise TokenError(
                f"failed to parse token response (body: {body.decode('utf-8', 'replace')}): {e}"
            ) from e
        return extract_token(payload)
