"""Outbound call to the chat backend."""

from __future__ import annotations

import json
import logging
import uuid

import httpx

from openai_proxy.core.config import GatewayConfig
from openai_proxy.core.types import ChatRequest
from openai_proxy.errors import DownstreamError, InternalError

logger = logging.getLogger(__name__)


class Dispatcher:
    """Sends a normalized chat document to the backend with the auth headers attached.

    The returned :class:`httpx.Response` is opened in streaming mode and left
    unconsumed; the caller decides between buffered and streamed handling and
    must close it.
    """

    def __init__(self, client: httpx.AsyncClient, cfg: GatewayConfig) -> None:
        self._client = client
        self._cfg = cfg

    def build_headers(self, credential: str) -> dict[str, str]:
        cfg = self._cfg
        return {
            cfg.trust_token_header: credential,
            cfg.correlation_id_header: str(uuid.uuid4()),
            cfg.user_session_id_header: str(uuid.uuid4()),
            cfg.token_type_header: cfg.token_type_value,
            "Content-Type": "application/json",
        }

    async def dispatch(self, request: ChatRequest, credential: str) -> httpx.Response:
        try:
            payload = json.dumps(request.to_dict(), allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise InternalError(f"failed to serialize request body: {e}") from e

        cfg = self._cfg
        try:
            outbound = self._client.build_request(
                cfg.backend_method,
                cfg.backend_url,
                content=payload,
                headers=self.build_headers(credential),
                timeout=httpx.Timeout(cfg.server_timeout_s),
            )
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            raise InternalError(f"failed to build backend request: {e}") from e

        try:
            return await self._client.send(outbound, stream=True)
        except httpx.HTTPError as e:
            logger.warning("Backend request to %s failed: %s", cfg.backend_url, e)
            raise DownstreamError(f"failed to forward request: {e}") from e
