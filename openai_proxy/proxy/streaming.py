"""Incremental translation of the backend event stream into OpenAI chunks.

The backend emits ``data: {"content": ...}`` lines. Each one becomes a
``chat.completion.chunk`` frame carrying the content as a delta; when the
backend body ends a single terminal chunk (empty delta, ``finish_reason:
"stop"``) closes the stream.
"""

from __future__ import annotations

import enum
import json
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import httpx
from fastapi.responses import StreamingResponse

from openai_proxy.core.types import ChatCompletionChunk, ChunkChoice, ChunkDelta
from openai_proxy.errors import StreamError

from .helpers import coerce_text, new_completion_id, sse_frame

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


class StreamState(enum.Enum):
    READING = "reading"
    TERMINATED = "terminated"


async def iter_backend_lines(response: httpx.Response) -> AsyncIterator[str]:
    """Yield the newline-terminated lines of a streamed backend body.

    A trailing fragment without a newline is dropped when the body ends.
    """
    buffer = ""
    async for text in response.aiter_text():
        buffer += text
        start = 0
        while (end := buffer.find("\n", start)) >= 0:
            yield buffer[start:end + 1]
            start = end + 1
        buffer = buffer[start:]
    if buffer:
        logger.debug("Discarding unterminated trailing line (%d chars)", len(buffer))


class StreamTranslator:
    """Per-connection state machine re-framing backend lines as chunk frames.

    ``is_disconnected`` is polled after every emitted content chunk; once it
    reports the client is gone the stream stops without a terminal chunk.
    """

    def __init__(
        self,
        model: str,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        self.model = model
        self.completion_id = new_completion_id()
        self.created = int(time.time())
        self.state = StreamState.READING
        self._is_disconnected = is_disconnected

    def _chunk(self, choice: ChunkChoice) -> ChatCompletionChunk:
        return ChatCompletionChunk(
            id=self.completion_id,
            created=self.created,
            model=self.model,
            choices=[choice],
        )

    def content_chunk(self, event: dict[str, Any]) -> ChatCompletionChunk:
        content = coerce_text(event.get("content"))
        return self._chunk(
            ChunkChoice(delta=ChunkDelta(content=content or None, role="assistant")),
        )

    def terminal_chunk(self) -> ChatCompletionChunk:
        return self._chunk(ChunkChoice(delta=ChunkDelta(), finish_reason="stop"))

    def frame_for_line(self, line: str) -> str | None:
        """Return the outbound frame for one backend line, or ``None`` to skip it."""
        line = line.strip()
        if not line.startswith(DATA_PREFIX):
            return None
        data = line[len(DATA_PREFIX):]
        if data == DONE_SENTINEL:
            return None
        try:
            event = json.loads(data)
        except ValueError:
            logger.debug("Skipping malformed backend frame: %r", data[:200])
            return None
        if not isinstance(event, dict):
            return None
        return sse_frame(self.content_chunk(event).to_json())

    async def _client_gone(self) -> bool:
        if self._is_disconnected is None:
            return False
        return await self._is_disconnected()

    async def translate(self, lines: AsyncIterator[str]) -> AsyncIterator[str]:
        """Yield SSE frames for ``lines``; raises :class:`StreamError` on read failure."""
        try:
            async for line in lines:
                frame = self.frame_for_line(line)
                if frame is None:
                    continue
                yield frame
                if await self._client_gone():
                    logger.debug("Client disconnected from stream %s", self.completion_id)
                    self.state = StreamState.TERMINATED
                    return
        except (httpx.HTTPError, httpx.StreamError) as e:
            self.state = StreamState.TERMINATED
            raise StreamError(f"failed to read backend stream: {e}") from e

        self.state = StreamState.TERMINATED
        yield sse_frame(self.terminal_chunk().to_json())


async def stream_chat_response(
    response: httpx.Response,
    model: str,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> StreamingResponse:
    """Relay a streamed backend reply as an OpenAI SSE response.

    The first frame is read before the response starts, so a backend read
    failure at that point propagates as :class:`StreamError` and can still be
    reported as a JSON error. Later failures only end the stream.
    """
    translator = StreamTranslator(model, is_disconnected)
    frames = translator.translate(iter_backend_lines(response))
    try:
        first: str | None = await anext(frames)
    except StopAsyncIteration:
        first = None
    except BaseException:
        await frames.aclose()
        await response.aclose()
        raise

    async def _relay() -> AsyncIterator[str]:
        try:
            if first is not None:
                yield first
            async for frame in frames:
                yield frame
        except StreamError as e:
            logger.error("Stream %s aborted mid-response: %s", translator.completion_id, e)
        finally:
            await frames.aclose()
            await response.aclose()

    return StreamingResponse(
        _relay(),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )
