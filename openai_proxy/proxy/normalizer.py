"""Inbound request parsing and parameter defaulting."""

from __future__ import annotations

import json

from openai_proxy.core.config import GatewayConfig
from openai_proxy.core.types import ChatRequest
from openai_proxy.errors import InvalidRequestError


def normalize(raw_body: bytes, cfg: GatewayConfig) -> ChatRequest:
    """Parse the inbound body and fill in ``user`` / ``max_tokens`` defaults.

    Defaults are written only when the key is absent. With
    ``cfg.legacy_max_token_check`` the ``max_tokens`` default is gated on the
    ``max_token`` key instead, which overwrites a caller-supplied
    ``max_tokens`` unless ``max_token`` is also present.
    """
    try:
        data = json.loads(raw_body)
    except ValueError as e:
        raise InvalidRequestError(f"failed to parse request body: {e}") from e
    if not isinstance(data, dict):
        raise InvalidRequestError("request body must be a JSON object")

    request = ChatRequest(data)
    request.set_default("user", cfg.default_user)
    request.set_default(
        "max_tokens",
        cfg.default_max_tokens,
        check_key="max_token" if cfg.legacy_max_token_check else "max_tokens",
    )
    return request
