"""Shared Pydantic models for the proxy.

Outbound OpenAI wire shapes live here; the inbound document is kept as an
open mapping (:class:`ChatRequest`) because unknown keys must pass through
to the backend untouched.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, Field

from openai_proxy.proxy.helpers import coerce_bool, coerce_text

DEFAULT_MODEL = "gpt-3.5-turbo"


# --- Inbound document ---


class ChatRequest(Mapping[str, Any]):
    """Inbound chat-completion document with typed accessors for routing hints.

    Keys keep their insertion order. ``model`` and ``stream`` are read through
    the coercion rules in :mod:`openai_proxy.proxy.helpers` but never
    rewritten in the document itself.
    """

    def __init__(self, data: dict[str, Any]) -> None:
        self._data = data

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"ChatRequest({self._data!r})"

    def set_default(self, key: str, value: Any, *, check_key: str | None = None) -> None:
        """Write ``value`` under ``key`` when ``check_key`` (default: ``key``) is absent."""
        if (check_key or key) not in self._data:
            self._data[key] = value

    @property
    def model(self) -> str:
        return coerce_text(self._data.get("model")) or DEFAULT_MODEL

    @property
    def stream(self) -> bool:
        return coerce_bool(self._data.get("stream", False))

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)


# --- Non-stream response ---


class ChatCompletionChoiceMessage(BaseModel):
    """Message within a chat completion choice."""

    role: str = "assistant"
    content: str


class ChatCompletionChoice(BaseModel):
    """A single choice in a chat completion response."""

    message: ChatCompletionChoiceMessage
    finish_reason: str
    index: int = 0


class CompletionUsage(BaseModel):
    """Token usage statistics."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    """OpenAI-compatible chat completion response."""

    id: str
    object: str = "chat.completion"
    created: int
    model: str
    choices: list[ChatCompletionChoice]
    usage: CompletionUsage = Field(default_factory=CompletionUsage)


# --- Stream response ---


class ChunkDelta(BaseModel):
    """Incremental message content; empty fields are dropped on the wire."""

    content: str | None = None
    role: str | None = None


class ChunkChoice(BaseModel):
    delta: ChunkDelta = Field(default_factory=ChunkDelta)
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """OpenAI-compatible streaming chunk."""

    id: str
    object: str = "chat.completion.chunk"
    created: int
    model: str
    choices: list[ChunkChoice]

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


# --- Misc ---


class ErrorDetail(BaseModel):
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Error envelope returned for every failed request."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    service: str = "openai-proxy"
    time: str
