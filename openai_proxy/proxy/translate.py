"""Single-shot translation of a backend JSON reply into a chat completion."""

from __future__ import annotations

import json
import time

from openai_proxy.core.types import (
    ChatCompletionChoice,
    ChatCompletionChoiceMessage,
    ChatCompletionResponse,
    CompletionUsage,
)
from openai_proxy.errors import InternalError

from .helpers import coerce_int, coerce_text, new_completion_id


def translate_completion(raw_body: bytes, model: str) -> ChatCompletionResponse:
    """Reshape ``{"content", "finish_reason", "prompt_tokens"?, "completion_tokens"?}``.

    Raises :class:`InternalError` when the body is not a JSON object; callers
    fall back to passing the backend reply through verbatim in that case.
    """
    try:
        data = json.loads(raw_body)
    except ValueError as e:
        raise InternalError(f"failed to parse backend response: {e}") from e
    if not isinstance(data, dict):
        raise InternalError("backend response is not a JSON object")

    prompt_tokens = coerce_int(data.get("prompt_tokens"))
    completion_tokens = coerce_int(data.get("completion_tokens"))

    return ChatCompletionResponse(
        id=new_completion_id(),
        created=int(time.time()),
        model=model,
        choices=[
            ChatCompletionChoice(
                message=ChatCompletionChoiceMessage(content=coerce_text(data.get("content"))),
                finish_reason=coerce_text(data.get("finish_reason")),
            ),
        ],
        usage=CompletionUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )
