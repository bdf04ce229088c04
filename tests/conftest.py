"""Shared test fixtures for the proxy."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from openai_proxy.core.config import GatewayConfig, get_gateway_config

AUTH_URL = "http://auth.test/api/get-jwt"
BACKEND_URL = "http://backend.test/api/ai-call"


def make_config(**overrides) -> GatewayConfig:
    """GatewayConfig pointed at the mock auth/backend hosts."""
    fields = {"auth_url": AUTH_URL, "backend_url": BACKEND_URL}
    fields.update(overrides)
    return GatewayConfig(**fields)


def json_response(payload: object, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(payload).encode())


class ChunkedStream(httpx.AsyncByteStream):
    """Async body delivered as ``chunks``, optionally ending in a read error."""

    def __init__(self, chunks: list[bytes], *, fail: bool = False) -> None:
        self._chunks = chunks
        self._fail = fail

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk
        if self._fail:
            raise httpx.ReadError("connection reset by peer")


class FakeServices:
    """Routes requests to an auth handler or a backend handler, recording them."""

    def __init__(
        self,
        auth: Callable[[httpx.Request], httpx.Response] | None = None,
        backend: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> None:
        self.auth = auth or (lambda request: json_response({"token": "jwt-abc"}))
        self.backend = backend or (
            lambda request: json_response({"content": "hi", "finish_reason": "stop"})
        )
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if str(request.url) == AUTH_URL:
            return self.auth(request)
        if str(request.url) == BACKEND_URL:
            return self.backend(request)
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    def backend_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == BACKEND_URL]


@pytest.fixture(autouse=True)
def _clear_config_cache():
    """Reset the cached gateway config around each test."""
    get_gateway_config.cache_clear()
    yield
    get_gateway_config.cache_clear()
