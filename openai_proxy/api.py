"""OpenAI-compatible gateway: FastAPI app in front of a JWT-authenticated chat backend.

Every call to ``/chat/completions`` fetches a fresh credential from the auth
service, fills request defaults, forwards the document to the backend with
the trust-token headers attached, and reshapes the backend reply (one JSON
object, or a ``data:`` line stream) into the OpenAI wire format.

Endpoints:
- POST /chat/completions: Chat completion (streaming or not)
- GET  /health: Health check

Usage::

    TOKEN_URL=http://auth:8000/api/get-jwt TARGET_URL=http://backend:8001/api/ai-call \\
        openai-proxy
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from .core.config import GatewayConfig, get_gateway_config
from .core.types import ErrorDetail, ErrorResponse, HealthResponse
from .errors import InternalError, ProxyError
from .proxy.credentials import CredentialProvider
from .proxy.dispatcher import Dispatcher
from .proxy.normalizer import normalize
from .proxy.streaming import stream_chat_response
from .proxy.translate import translate_completion

logger = logging.getLogger(__name__)


@dataclass
class GatewayServices:
    """Per-process collaborators sharing one pooled HTTP client."""

    config: GatewayConfig
    client: httpx.AsyncClient
    credentials: CredentialProvider
    dispatcher: Dispatcher


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    services: GatewayServices | None = getattr(app.state, "services", None)
    if services is not None:
        await services.client.aclose()


web_app = FastAPI(
    title="OpenAI Proxy",
    description="OpenAI-compatible chat completions over a JWT-authenticated backend",
    version="0.1.0",
    lifespan=_lifespan,
)


def configure_web_app(cfg: GatewayConfig, client: httpx.AsyncClient | None = None) -> None:
    """Inject runtime config and the shared outbound client into the app."""
    if client is None:
        client = httpx.AsyncClient(timeout=httpx.Timeout(cfg.server_timeout_s, connect=10.0))
    web_app.state.services = GatewayServices(
        config=cfg,
        client=client,
        credentials=CredentialProvider(client, cfg),
        dispatcher=Dispatcher(client, cfg),
    )


def _services(request: Request) -> GatewayServices:
    services: GatewayServices | None = getattr(request.app.state, "services", None)
    if services is None:
        configure_web_app(get_gateway_config())
        services = request.app.state.services
    return services


@web_app.exception_handler(ProxyError)
async def _proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("%s %s failed (%s): %s", request.method, request.url.path, exc.error_type, exc.message)
    body = ErrorResponse(error=ErrorDetail(message=exc.message, type=exc.error_type))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@web_app.post("/chat/completions", response_model=None)
async def chat_completions(request: Request) -> Response:
    """Chat completion endpoint (forwards to the configured backend)."""
    services = _services(request)

    credential = await services.credentials.acquire()
    chat_request = normalize(await request.body(), services.config)
    model = chat_request.model

    resp = await services.dispatcher.dispatch(chat_request, credential)

    if chat_request.stream:
        return await stream_chat_response(resp, model, request.is_disconnected)

    try:
        body = await resp.aread()
    except httpx.HTTPError as e:
        raise InternalError(f"failed to read backend response: {e}") from e
    finally:
        await resp.aclose()

    try:
        completion = translate_completion(body, model)
    except InternalError as e:
        logger.warning("Passing backend reply through untranslated (HTTP %d): %s", resp.status_code, e)
        return Response(
            content=body,
            status_code=resp.status_code,
            media_type=resp.headers.get("content-type"),
        )
    return JSONResponse(content=completion.model_dump(), status_code=resp.status_code)


@web_app.get("/health")
async def health_check() -> HealthResponse:
    """Liveness probe; does not touch the auth service or the backend."""
    return HealthResponse(time=datetime.now().astimezone().isoformat(timespec="seconds"))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _log_config(cfg: GatewayConfig) -> None:
    logger.info("=== openai-proxy config ===")
    logger.info("Token URL: %s %s (timeout %ss)", cfg.auth_method, cfg.auth_url, cfg.auth_timeout_s)
    logger.info("Token payload token_type: %s", cfg.auth_token_type or "<none>")
    logger.info("Target URL: %s %s (timeout %ss)", cfg.backend_method, cfg.backend_url, cfg.server_timeout_s)
    logger.info("Listening on %s:%d", cfg.server_host, cfg.server_port)


def main() -> None:
    """Run the gateway with config resolved from YAML and the environment."""
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg = get_gateway_config()
    _log_config(cfg)
    configure_web_app(cfg)
    uvicorn.run(web_app, host=cfg.server_host, port=cfg.server_port)


if __name__ == "__main__":
    main()
